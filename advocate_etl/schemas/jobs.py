"""Worker job envelope and per-run result schemas."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class JobKind(str, Enum):
    """Closed set of worker kinds the registry can dispatch to."""
    PROCESS_FILE = "process-file"
    ETL_BATCH = "etl-batch"
    EXTRACT_FILES = "extract-files"


class JobSource(str, Enum):
    API = "api"
    QUEUE = "queue"
    ADMIN_API = "admin-api"
    CLI = "cli"


class WorkerJob(BaseModel):
    """A request to run one worker."""

    worker_id: str = Field(..., description="Worker kind to dispatch to")
    input: Dict[str, Any] = Field(default_factory=dict, description="Worker-specific input")
    job_id: Optional[str] = Field(None, description="Caller-supplied job ID")
    source: JobSource = Field(default=JobSource.CLI, description="Where the job came from")
    metadata: Optional[Dict[str, Any]] = None


class WorkerJobResult(BaseModel):
    """Outcome of running one worker job."""

    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    job_id: str
    worker_id: str
    executed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: int = 0


class ItemStatus(str, Enum):
    DONE = "done"
    QUARANTINED = "quarantined"
    FAILED = "failed"


class ItemResult(BaseModel):
    """Outcome of processing a single source file."""

    file_name: str
    success: bool
    status: ItemStatus
    error_kind: Optional[str] = None
    error: Optional[str] = None
    user_id: Optional[UUID] = None
    repairs: List[str] = Field(default_factory=list)
    data_quality: Optional[Dict[str, Any]] = None


class FailedFile(BaseModel):
    file_name: str
    error: str


class BatchSummary(BaseModel):
    """Aggregate result of one batch run."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    duration_ms: int = 0
    successful_files: List[str] = Field(default_factory=list)
    failed_files: List[FailedFile] = Field(default_factory=list)
    results: List[ItemResult] = Field(default_factory=list)


class ProjectionSummary(BaseModel):
    """Counts of rows upserted for one canonical user."""

    user_id: UUID
    programs: int = 0
    skipped_programs: int = 0
    tasks: int = 0
    skipped_tasks: int = 0


class ExtractSummary(BaseModel):
    """Outcome of extracting a source archive."""

    archive_path: str
    extracted_to: str
    archive_size: int
    files_extracted: int
    skipped_members: int = 0
    target_cleaned: bool = False
    database_cleaned: bool = False
