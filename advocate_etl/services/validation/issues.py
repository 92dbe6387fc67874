"""Field-pathed validation issues."""

from typing import List, NamedTuple

from pydantic import ValidationError as PydanticValidationError


class FieldIssue(NamedTuple):
    """A single violation, pathed with dots and list indices."""
    path: str
    message: str


def issues_from_pydantic(error: PydanticValidationError) -> List[FieldIssue]:
    """Flatten pydantic errors into dotted-path issues.

    ``("advocacy_programs", 0, "tasks_completed", 1, "platform")`` becomes
    ``advocacy_programs.0.tasks_completed.1.platform``.
    """
    return [
        FieldIssue(path=".".join(str(part) for part in err["loc"]), message=err["msg"])
        for err in error.errors()
    ]
