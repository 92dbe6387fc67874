"""Quarantine lifecycle for documents that failed ingestion.

Items move ``failed -> retrying -> {fixed | failed}`` or ``failed -> ignored``,
and can be deleted from any status. ``fixed`` and ``ignored`` are terminal.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from advocate_etl.core.exceptions import (
    AppError,
    DatabaseError,
    NotFoundError,
    ParseError,
    QuarantineStateError,
    StorageError,
    ValidationError,
)
from advocate_etl.database.models import FailedImport
from advocate_etl.repositories.failed_import_repository import FailedImportRepository
from advocate_etl.schemas.quarantine import (
    BatchRetryError,
    BatchRetryResult,
    ErrorType,
    QuarantineFilters,
    QuarantineItemCreate,
    QuarantineItemResponse,
    QuarantineStats,
    QuarantineStatus,
    RetryOutcome,
)
from advocate_etl.services.document_pipeline import validate_and_project
from advocate_etl.services.storage import SourceStore
from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
MAX_RETRIES_EXCEEDED = "Max retries exceeded (use force=true to override)"
RECENT_FAILURES_LIMIT = 10

ItemId = Union[UUID, str]


def classify_error(error: Exception) -> ErrorType:
    """Map a pipeline exception to the quarantine error type."""
    if isinstance(error, ParseError):
        return ErrorType.JSON_PARSE_ERROR
    if isinstance(error, ValidationError):
        return ErrorType.VALIDATION_ERROR
    if isinstance(error, DatabaseError):
        return ErrorType.DATABASE_ERROR
    return ErrorType.TRANSFORMATION_ERROR


def error_details_for(error: Exception) -> Optional[Dict[str, Any]]:
    """Structured details stored next to the error message."""
    if isinstance(error, ValidationError):
        return {"issues": [{"path": path, "message": message} for path, message in error.issues]}
    if isinstance(error, ParseError):
        return {"repairs": error.repairs}
    return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_uuid(item_id: ItemId) -> UUID:
    if isinstance(item_id, UUID):
        return item_id
    try:
        return UUID(str(item_id))
    except ValueError:
        raise NotFoundError(f"Failed import {item_id} not found")


class QuarantineService:
    """Records, lists, edits, retries and removes quarantined documents.

    Each operation runs in its own session and commits before returning.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        source_store: Optional[SourceStore] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.session_factory = session_factory
        self.source_store = source_store
        self.max_retries = max_retries

    async def _load(self, repository: FailedImportRepository, item_id: ItemId) -> FailedImport:
        item = await repository.get_by_id(_as_uuid(item_id))
        if item is None:
            raise NotFoundError(f"Failed import {item_id} not found")
        return item

    async def create(self, item: QuarantineItemCreate) -> FailedImport:
        """Record a newly quarantined document with status ``failed``."""
        async with self.session_factory() as session:
            repository = FailedImportRepository(session)
            record = await repository.create(
                file_name=item.file_name,
                file_path=item.file_path,
                raw_data=item.raw_data,
                error_type=item.error_type.value,
                error_message=item.error_message,
                error_details=item.error_details,
                attempted_at=item.attempted_at,
                retry_count=0,
                status=QuarantineStatus.FAILED.value,
            )
            await session.commit()

        LOGGER.info(
            f"Quarantined {item.file_name}",
            extra={"failed_import_id": str(record.id), "error_type": item.error_type.value}
        )
        return record

    async def find_by_id(self, item_id: ItemId) -> FailedImport:
        """Get a quarantined item.

        Raises:
            NotFoundError: If no item has this id
        """
        async with self.session_factory() as session:
            return await self._load(FailedImportRepository(session), item_id)

    async def list(
        self,
        filters: Optional[QuarantineFilters] = None,
        skip: int = 0,
        limit: int = 50,
        sort: str = "-attempted_at",
    ) -> List[FailedImport]:
        async with self.session_factory() as session:
            return await FailedImportRepository(session).list_filtered(filters, skip, limit, sort)

    async def count(self, filters: Optional[QuarantineFilters] = None) -> int:
        async with self.session_factory() as session:
            return await FailedImportRepository(session).count_filtered(filters)

    async def update(
        self,
        item_id: ItemId,
        raw_data: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> FailedImport:
        """Edit the stored raw text and/or operator notes.

        Raises:
            NotFoundError: If no item has this id
            QuarantineStateError: If the item is fixed or ignored
            ParseError: If ``raw_data`` is not valid JSON
        """
        if raw_data is not None:
            try:
                json.loads(raw_data)
            except (ValueError, RecursionError) as e:
                raise ParseError(f"Edited document is not valid JSON: {str(e)}", original_error=e)

        async with self.session_factory() as session:
            repository = FailedImportRepository(session)
            item = await self._load(repository, item_id)
            if QuarantineStatus(item.status).is_terminal:
                raise QuarantineStateError(f"Cannot edit a {item.status} item")

            fields: Dict[str, Any] = {}
            if raw_data is not None:
                fields["raw_data"] = raw_data
            if notes is not None:
                fields["notes"] = notes

            item = await repository.update_fields(item.id, **fields)
            await session.commit()
            return item

    async def _transition(
        self,
        item_id: ItemId,
        allowed_from: Iterable[QuarantineStatus],
        target: QuarantineStatus,
        bump_retry: bool = False,
        **fields,
    ) -> FailedImport:
        async with self.session_factory() as session:
            repository = FailedImportRepository(session)
            item = await self._load(repository, item_id)

            current = QuarantineStatus(item.status)
            if current not in allowed_from:
                raise QuarantineStateError(
                    f"Cannot move failed import {item.id} from {current.value} to {target.value}"
                )

            if bump_retry:
                fields["retry_count"] = item.retry_count + 1

            item = await repository.update_fields(item.id, status=target.value, **fields)
            await session.commit()
            return item

    async def increment_retry(self, item_id: ItemId) -> FailedImport:
        """Mark the item ``retrying``, bump its retry count and stamp ``last_retry_at``."""
        return await self._transition(
            item_id,
            allowed_from=[QuarantineStatus.FAILED],
            target=QuarantineStatus.RETRYING,
            bump_retry=True,
            last_retry_at=_now(),
        )

    async def mark_fixed(self, item_id: ItemId) -> FailedImport:
        return await self._transition(
            item_id,
            allowed_from=[QuarantineStatus.RETRYING],
            target=QuarantineStatus.FIXED,
            fixed_at=_now(),
        )

    async def mark_ignored(self, item_id: ItemId, notes: Optional[str] = None) -> FailedImport:
        fields = {"notes": notes} if notes is not None else {}
        return await self._transition(
            item_id,
            allowed_from=[QuarantineStatus.FAILED],
            target=QuarantineStatus.IGNORED,
            **fields,
        )

    async def _mark_retry_failed(self, item_id: ItemId, error: Exception) -> FailedImport:
        return await self._transition(
            item_id,
            allowed_from=[QuarantineStatus.RETRYING],
            target=QuarantineStatus.FAILED,
            error_type=classify_error(error).value,
            error_message=str(error) or error.__class__.__name__,
            error_details=error_details_for(error),
            last_retry_at=_now(),
        )

    async def _remove_quarantined_file(self, file_name: str) -> None:
        if self.source_store is None:
            return
        try:
            await self.source_store.delete_quarantined(file_name)
        except StorageError as e:
            LOGGER.warning(
                f"Could not remove quarantined file {file_name}: {str(e)}",
                extra={"file_name": file_name}
            )

    async def delete(self, item_id: ItemId) -> bool:
        """Delete the item and, best effort, its quarantined file.

        Raises:
            NotFoundError: If no item has this id
        """
        async with self.session_factory() as session:
            repository = FailedImportRepository(session)
            item = await self._load(repository, item_id)
            file_name = item.file_name
            await repository.delete(item.id)
            await session.commit()

        await self._remove_quarantined_file(file_name)
        LOGGER.info(f"Deleted failed import {item_id}", extra={"file_name": file_name})
        return True

    async def retry(self, item_id: ItemId) -> RetryOutcome:
        """Re-run validation and projection on the stored raw text.

        The text is parsed as-is; repair is not attempted on operator-edited
        documents. On failure the same item is updated and returns to ``failed``.

        Raises:
            NotFoundError: If no item has this id
            QuarantineStateError: If the item is not ``failed``
        """
        item = await self.increment_retry(item_id)

        try:
            try:
                parsed = json.loads(item.raw_data)
            except (ValueError, RecursionError) as e:
                raise ParseError(f"Stored document is not valid JSON: {str(e)}", original_error=e)

            outcome = await validate_and_project(self.session_factory, parsed)

        except AppError as e:
            return await self._retry_failed(item, e)

        except Exception as e:
            # The item must leave ``retrying`` whatever went wrong
            LOGGER.error(
                f"Unexpected error retrying {item.file_name}: {str(e)}",
                exc_info=True,
                extra={"failed_import_id": str(item.id)}
            )
            return await self._retry_failed(item, e)

        await self.mark_fixed(item.id)
        await self._remove_quarantined_file(item.file_name)

        LOGGER.info(
            f"Retry of {item.file_name} succeeded",
            extra={"failed_import_id": str(item.id), "user_id": str(outcome.user.user_id)}
        )
        return RetryOutcome(
            id=item.id, success=True, status=QuarantineStatus.FIXED, user_id=outcome.user.user_id
        )

    async def _retry_failed(self, item: FailedImport, error: Exception) -> RetryOutcome:
        failed = await self._mark_retry_failed(item.id, error)
        message = str(error) or error.__class__.__name__
        LOGGER.warning(
            f"Retry of {item.file_name} failed: {message}",
            extra={
                "failed_import_id": str(item.id),
                "retry_count": failed.retry_count,
                "error_type": failed.error_type,
            }
        )
        return RetryOutcome(
            id=item.id, success=False, status=QuarantineStatus.FAILED, error=message
        )

    async def batch_retry(self, item_ids: Iterable[ItemId], force: bool = False) -> BatchRetryResult:
        """Retry several items, skipping terminal ones and those out of retries.

        Args:
            item_ids: Items to retry
            force: Retry even when ``retry_count`` has reached ``max_retries``

        Returns:
            BatchRetryResult with success/failed/skipped counts and reasons
        """
        result = BatchRetryResult()

        for item_id in item_ids:
            try:
                item = await self.find_by_id(item_id)
            except NotFoundError:
                result.skipped += 1
                result.errors.append(BatchRetryError(id=str(item_id), error="not found"))
                continue

            status = QuarantineStatus(item.status)
            if status.is_terminal:
                result.skipped += 1
                result.errors.append(BatchRetryError(id=str(item_id), error=f"Item is {status.value}"))
                continue

            if item.retry_count >= self.max_retries and not force:
                result.skipped += 1
                result.errors.append(BatchRetryError(id=str(item_id), error=MAX_RETRIES_EXCEEDED))
                continue

            try:
                outcome = await self.retry(item.id)
            except QuarantineStateError as e:
                result.skipped += 1
                result.errors.append(BatchRetryError(id=str(item_id), error=str(e)))
                continue

            if outcome.success:
                result.success += 1
            else:
                result.failed += 1
                result.errors.append(BatchRetryError(id=str(item_id), error=outcome.error or "retry failed"))

        LOGGER.info(
            "Batch retry completed",
            extra={"success": result.success, "failed": result.failed, "skipped": result.skipped}
        )
        return result

    async def stats(self) -> QuarantineStats:
        """Totals by error type and status, plus the most recent failures."""
        async with self.session_factory() as session:
            repository = FailedImportRepository(session)
            total = await repository.count()
            by_type = await repository.count_by("error_type")
            by_status = await repository.count_by("status")
            recent = await repository.list_filtered(limit=RECENT_FAILURES_LIMIT)

        return QuarantineStats(
            total=total,
            by_type=by_type,
            by_status=by_status,
            recent=[QuarantineItemResponse.model_validate(item) for item in recent],
        )
