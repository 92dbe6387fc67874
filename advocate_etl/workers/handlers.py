"""Worker implementations dispatched by the registry."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from advocate_etl.services.archive_service import ArchiveService
from advocate_etl.services.batch_driver import BatchDriver
from advocate_etl.services.item_processor import ItemProcessor
from advocate_etl.services.quarantine_service import QuarantineService
from advocate_etl.workers.context import IngestContext


@dataclass
class WorkerOutput:
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


def _item_processor(context: IngestContext) -> ItemProcessor:
    quarantine = QuarantineService(
        context.session_factory,
        context.source_store,
        max_retries=context.settings.etl.max_retries,
    )
    return ItemProcessor(context.source_store, context.session_factory, quarantine)


async def process_file(job_input: Dict[str, Any], context: IngestContext, job_id: str) -> WorkerOutput:
    """Run a single named file through the pipeline."""
    file_name = job_input.get("file_name") or job_input.get("fileName")
    if not file_name:
        return WorkerOutput(success=False, message="file_name is required", error="INVALID_INPUT")

    result = await _item_processor(context).process(file_name, job_id=job_id)
    if result.success:
        return WorkerOutput(
            success=True, message=f"Processed {file_name}", data=result.model_dump(mode="json")
        )
    return WorkerOutput(
        success=False,
        message=f"Failed to process {file_name}",
        data=result.model_dump(mode="json"),
        error=result.error,
    )


async def etl_batch(job_input: Dict[str, Any], context: IngestContext, job_id: str) -> WorkerOutput:
    """Process every source file with bounded concurrency."""
    etl = context.settings.etl
    batch_size = int(job_input.get("batch_size", etl.batch_size))
    concurrency = int(job_input.get("concurrency", etl.concurrency))

    driver = BatchDriver(context.source_store, _item_processor(context))
    summary = await driver.run_batch(batch_size=batch_size, concurrency=concurrency, job_id=job_id)

    return WorkerOutput(
        success=True,
        message=(
            f"Processed {summary.total} files: "
            f"{summary.successful} succeeded, {summary.failed} failed"
        ),
        data=summary.model_dump(mode="json", exclude={"results"}),
    )


async def extract_files(job_input: Dict[str, Any], context: IngestContext, job_id: str) -> WorkerOutput:
    """Unpack the source archive into the local source directory."""
    settings = context.settings
    summary = await ArchiveService(context.db_client).extract(
        archive_path=job_input.get("archive_path") or settings.etl.archive_path,
        target_dir=job_input.get("target_dir") or settings.storage.local_path,
        clean_target=job_input.get("clean_target", True),
        clean_database=job_input.get("clean_database", True),
        job_id=job_id,
    )
    return WorkerOutput(
        success=True,
        message=f"Successfully extracted {summary.files_extracted} files",
        data=summary.model_dump(mode="json"),
    )
