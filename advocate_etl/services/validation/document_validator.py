"""Validate and normalize parsed advocate documents."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from advocate_etl.core.exceptions import ValidationError
from advocate_etl.schemas.canonical import CanonicalUser, DataQuality
from advocate_etl.services.validation.business_rules import check_platform_handles
from advocate_etl.services.validation.issues import FieldIssue, issues_from_pydantic
from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class ValidationResult:
    """Typed result of validating one parsed document."""
    user: Optional[CanonicalUser] = None
    issues: List[FieldIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.user is not None and not self.issues

    def unwrap(self) -> CanonicalUser:
        """Return the canonical user or raise ValidationError with every issue."""
        if not self.is_valid:
            raise ValidationError(self.issues)
        return self.user


def validate_user_document(parsed: Any) -> ValidationResult:
    """Run field rules, then cross-field rules, over a parsed document.

    Field rules report every violation at once. Cross-field rules run only
    when every field rule passed.

    Args:
        parsed: Parsed JSON tree for one advocate

    Returns:
        ValidationResult holding either the canonical user or the issues
    """
    try:
        user = CanonicalUser.model_validate(parsed)
    except PydanticValidationError as e:
        issues = issues_from_pydantic(e)
        LOGGER.debug("Field validation failed", extra={"issue_count": len(issues)})
        return ValidationResult(issues=issues)

    issues = check_platform_handles(user)
    if issues:
        return ValidationResult(issues=issues)

    return ValidationResult(user=user)


def assess_data_quality(user: CanonicalUser) -> DataQuality:
    """Summarize tolerated data-quality defects for a valid user."""
    if not user.programs:
        return DataQuality(is_clean=False, issues=["no_programs"], severity="warning")
    return DataQuality(is_clean=True, issues=[], severity="clean")
