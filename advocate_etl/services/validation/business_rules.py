"""Cross-field business rules applied after field validation succeeds."""

from typing import List

from advocate_etl.schemas.canonical import CanonicalUser, Platform
from advocate_etl.services.validation.issues import FieldIssue

# Platform -> handle attribute that must be set when a task uses the platform.
# Facebook tasks impose no handle requirement.
REQUIRED_HANDLES = {
    Platform.INSTAGRAM: "instagram_handle",
    Platform.TIKTOK: "tiktok_handle",
}


def check_platform_handles(user: CanonicalUser) -> List[FieldIssue]:
    """Require a handle for every platform referenced by any task.

    Args:
        user: Field-validated canonical user

    Returns:
        One issue per missing handle, pathed by the handle name
    """
    issues: List[FieldIssue] = []
    platforms = user.platforms_used()

    for platform, handle_field in REQUIRED_HANDLES.items():
        if platform in platforms and not getattr(user, handle_field):
            issues.append(
                FieldIssue(
                    path=handle_field,
                    message=f"{handle_field} is required when a task is posted on {platform.value}",
                )
            )

    return issues
