"""Process every source file in chunks with bounded concurrency."""

import asyncio
import time
from typing import List, Optional, TypeVar

from advocate_etl.core.exceptions import ValidationError
from advocate_etl.schemas.jobs import BatchSummary, FailedFile, ItemResult, ItemStatus
from advocate_etl.services.base_service import BaseService
from advocate_etl.services.item_processor import ItemProcessor
from advocate_etl.services.storage import SourceStore
from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 100
DEFAULT_CONCURRENCY = 5


def create_batches(items: List[T], batch_size: int) -> List[List[T]]:
    """Split items into consecutive chunks of at most ``batch_size``.

    Example:
        >>> create_batches([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4], [5]]
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [items[i:i + batch_size] for i in range(0, len(items), batch_size)]


class BatchDriver(BaseService):
    """Runs the item processor over the whole file set.

    The file list is taken once at the start. Chunks run one after another;
    inside a chunk at most ``concurrency`` files are in flight. One file's
    failure never aborts the batch.
    """

    def __init__(self, source_store: SourceStore, processor: ItemProcessor):
        super().__init__()
        self.source_store = source_store
        self.processor = processor

    async def run_batch(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        concurrency: int = DEFAULT_CONCURRENCY,
        job_id: Optional[str] = None,
    ) -> BatchSummary:
        """Process all files.

        Args:
            batch_size: Files per chunk
            concurrency: Maximum files processed at once within a chunk
            job_id: Optional job ID used for log correlation

        Returns:
            BatchSummary with per-file results

        Raises:
            ValidationError: If batch_size or concurrency is not positive
        """
        return await self.execute(batch_size=batch_size, concurrency=concurrency, job_id=job_id)

    def validate(self, batch_size: int, concurrency: int, job_id: Optional[str] = None):
        issues = []
        if batch_size <= 0:
            issues.append(("batch_size", "batch_size must be greater than 0"))
        if concurrency <= 0:
            issues.append(("concurrency", "concurrency must be greater than 0"))
        if issues:
            raise ValidationError(issues)

    async def run(self, batch_size: int, concurrency: int, job_id: Optional[str] = None) -> BatchSummary:
        started = time.monotonic()
        files = await self.source_store.list_files()
        batches = create_batches(files, batch_size)
        semaphore = asyncio.Semaphore(concurrency)

        LOGGER.info(
            f"Starting batch over {len(files)} files",
            extra={"job_id": job_id, "batch_size": batch_size, "concurrency": concurrency, "batches": len(batches)}
        )

        async def _process(file_name: str) -> ItemResult:
            async with semaphore:
                return await self.processor.process(file_name, job_id=job_id)

        summary = BatchSummary()
        for index, batch in enumerate(batches, start=1):
            outcomes = await asyncio.gather(
                *(_process(file_name) for file_name in batch),
                return_exceptions=True,
            )

            for file_name, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    LOGGER.error(
                        f"Unexpected error processing {file_name}: {str(outcome)}",
                        exc_info=outcome,
                        extra={"job_id": job_id}
                    )
                    outcome = ItemResult(
                        file_name=file_name,
                        success=False,
                        status=ItemStatus.FAILED,
                        error=str(outcome) or outcome.__class__.__name__,
                    )
                self._record(summary, outcome)

            LOGGER.info(
                f"Batch {index}/{len(batches)} done: "
                f"{summary.successful} succeeded, {summary.failed} failed of {len(files)}",
                extra={"job_id": job_id}
            )

        summary.total = len(files)
        summary.duration_ms = int((time.monotonic() - started) * 1000)

        LOGGER.info(
            "Batch run completed",
            extra={
                "job_id": job_id,
                "total": summary.total,
                "successful": summary.successful,
                "failed": summary.failed,
                "duration_ms": summary.duration_ms,
            }
        )
        return summary

    @staticmethod
    def _record(summary: BatchSummary, result: ItemResult) -> None:
        summary.results.append(result)
        if result.success:
            summary.successful += 1
            summary.successful_files.append(result.file_name)
        else:
            summary.failed += 1
            summary.failed_files.append(
                FailedFile(file_name=result.file_name, error=result.error or "unknown error")
            )
