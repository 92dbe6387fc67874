"""Document validation and normalization."""

from advocate_etl.services.validation.document_validator import (
    ValidationResult,
    assess_data_quality,
    validate_user_document,
)
from advocate_etl.services.validation.issues import FieldIssue

__all__ = [
    "FieldIssue",
    "ValidationResult",
    "assess_data_quality",
    "validate_user_document",
]
