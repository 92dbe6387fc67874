"""Process one source file: read, repair, validate, project, then delete or quarantine."""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from advocate_etl.core.exceptions import DatabaseError, ParseError, StorageError, ValidationError
from advocate_etl.schemas.jobs import ItemResult, ItemStatus
from advocate_etl.schemas.quarantine import QuarantineItemCreate
from advocate_etl.services.document_pipeline import validate_and_project
from advocate_etl.services.quarantine_service import (
    QuarantineService,
    classify_error,
    error_details_for,
)
from advocate_etl.services.storage import SourceStore
from advocate_etl.utils.json_repair import parse_json
from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ItemProcessor:
    """Runs a single file through the pipeline.

    A processed file ends up either deleted (ingested) or moved to the
    quarantine area with a matching quarantine record, never both.
    """

    def __init__(
        self,
        source_store: SourceStore,
        session_factory: async_sessionmaker[AsyncSession],
        quarantine: Optional[QuarantineService] = None,
    ):
        self.source_store = source_store
        self.session_factory = session_factory
        self.quarantine = quarantine or QuarantineService(session_factory, source_store)

    async def process(self, file_name: str, job_id: Optional[str] = None) -> ItemResult:
        """Process one file.

        Args:
            file_name: Name of the file in the source store
            job_id: Optional job ID used for log correlation

        Returns:
            ItemResult describing the outcome. Pipeline failures are reported
            here rather than raised.
        """
        log_extra = {"file_name": file_name, "job_id": job_id}
        attempted_at = datetime.now(timezone.utc)

        try:
            raw_data = await self.source_store.read_file(file_name)
        except StorageError as e:
            LOGGER.error(f"Could not read {file_name}: {str(e)}", extra=log_extra)
            return ItemResult(
                file_name=file_name, success=False, status=ItemStatus.FAILED, error=str(e)
            )

        result = parse_json(raw_data)
        if not result.success:
            error = ParseError(f"Invalid JSON: {result.error}", repairs=result.repairs)
            return await self._quarantine(file_name, raw_data, error, attempted_at, result.repairs, job_id)

        try:
            outcome = await validate_and_project(self.session_factory, result.data)
        except (ValidationError, DatabaseError) as e:
            return await self._quarantine(file_name, raw_data, e, attempted_at, result.repairs, job_id)
        except Exception as e:
            LOGGER.error(
                f"Unexpected error processing {file_name}: {str(e)}",
                exc_info=True,
                extra=log_extra
            )
            return await self._quarantine(file_name, raw_data, e, attempted_at, result.repairs, job_id)

        try:
            await self.source_store.delete_file(file_name)
        except StorageError as e:
            LOGGER.warning(
                f"Ingested {file_name} but could not delete it: {str(e)}", extra=log_extra
            )

        LOGGER.info(
            f"Processed {file_name}",
            extra={**log_extra, "user_id": str(outcome.user.user_id), "repairs": result.repairs}
        )
        return ItemResult(
            file_name=file_name,
            success=True,
            status=ItemStatus.DONE,
            user_id=outcome.user.user_id,
            repairs=result.repairs,
            data_quality=outcome.data_quality.model_dump(),
        )

    async def _quarantine(
        self,
        file_name: str,
        raw_data: str,
        error: Exception,
        attempted_at: datetime,
        repairs: List[str],
        job_id: Optional[str],
    ) -> ItemResult:
        """Move the file to quarantine, then record it.

        When the move fails the file stays in the source area and no record is
        written, so the next run picks the file up again instead of adding a
        second record for it.
        """
        error_type = classify_error(error)
        log_extra = {"file_name": file_name, "job_id": job_id, "error_type": error_type.value}
        message = str(error) or error.__class__.__name__
        LOGGER.warning(f"Quarantining {file_name}: {message}", extra=log_extra)

        try:
            file_path = await self.source_store.move_to_quarantine(file_name)
        except StorageError as e:
            LOGGER.error(f"Could not move {file_name} to quarantine: {str(e)}", extra=log_extra)
            return ItemResult(
                file_name=file_name,
                success=False,
                status=ItemStatus.FAILED,
                error_kind=error_type.value,
                error=f"{message} (not quarantined: {str(e)})",
                repairs=repairs,
            )

        try:
            await self.quarantine.create(
                QuarantineItemCreate(
                    file_name=file_name,
                    file_path=file_path,
                    raw_data=raw_data,
                    error_type=error_type,
                    error_message=message,
                    error_details=error_details_for(error),
                    attempted_at=attempted_at,
                )
            )
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Could not record quarantine entry for {file_name}: {str(e)}",
                exc_info=True,
                extra=log_extra
            )
            message = f"{message} (quarantine record not saved: {str(e)})"

        return ItemResult(
            file_name=file_name,
            success=False,
            status=ItemStatus.QUARANTINED,
            error_kind=error_type.value,
            error=message,
            repairs=repairs,
        )
