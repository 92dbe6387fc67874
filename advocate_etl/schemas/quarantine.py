"""Quarantine (failed import) schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ErrorType(str, Enum):
    """Failure classification recorded on a quarantined document."""
    JSON_PARSE_ERROR = "json_parse_error"
    VALIDATION_ERROR = "validation_error"
    TRANSFORMATION_ERROR = "transformation_error"
    DATABASE_ERROR = "database_error"


class QuarantineStatus(str, Enum):
    """Lifecycle status of a quarantined document."""
    FAILED = "failed"
    RETRYING = "retrying"
    FIXED = "fixed"
    IGNORED = "ignored"

    @property
    def is_terminal(self) -> bool:
        return self in (QuarantineStatus.FIXED, QuarantineStatus.IGNORED)


class QuarantineItemCreate(BaseModel):
    """Payload for recording a newly quarantined document."""

    file_name: str = Field(..., description="Source file name")
    file_path: str = Field(..., description="Location of the quarantined file")
    raw_data: str = Field(..., description="Raw document text as read")
    error_type: ErrorType = Field(..., description="Failure classification")
    error_message: str = Field(..., description="Human-readable failure reason")
    error_details: Optional[Dict[str, Any]] = Field(None, description="Structured failure details")
    attempted_at: datetime = Field(..., description="When processing was attempted")


class QuarantineItemResponse(BaseModel):
    """Quarantined document as stored."""

    id: UUID
    file_name: str
    file_path: str
    raw_data: str
    error_type: ErrorType
    error_message: str
    error_details: Optional[Dict[str, Any]] = None
    attempted_at: datetime
    retry_count: int
    status: QuarantineStatus
    fixed_at: Optional[datetime] = None
    last_retry_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class QuarantineFilters(BaseModel):
    """Filters accepted by the quarantine listing."""

    q: Optional[str] = Field(None, description="Substring matched against file name, error type and error message")
    error_type: Optional[ErrorType] = None
    status: Optional[QuarantineStatus] = None


class RetryOutcome(BaseModel):
    """Result of retrying a single quarantined document."""

    id: UUID
    success: bool
    status: QuarantineStatus
    error: Optional[str] = None
    user_id: Optional[UUID] = None


class BatchRetryError(BaseModel):
    id: str
    error: str


class BatchRetryResult(BaseModel):
    """Aggregate result of a batch retry."""

    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[BatchRetryError] = Field(default_factory=list)


class QuarantineStats(BaseModel):
    """Counts by type and status, plus the most recent failures."""

    total: int
    by_type: Dict[str, int]
    by_status: Dict[str, int]
    recent: List[QuarantineItemResponse]
