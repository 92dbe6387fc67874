"""Repository for quarantined (failed) imports."""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from advocate_etl.database.models import FailedImport
from advocate_etl.repositories.base_repository import BaseRepository
from advocate_etl.schemas.quarantine import QuarantineFilters

SORTABLE_COLUMNS = {
    "attempted_at",
    "created_at",
    "updated_at",
    "file_name",
    "retry_count",
    "status",
    "error_type",
}


class FailedImportRepository(BaseRepository[FailedImport]):
    """Repository for FailedImport model operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, FailedImport)

    async def create(self, **kwargs) -> FailedImport:
        """Record a new quarantined document.

        Args:
            **kwargs: Column values for the new row

        Returns:
            The created FailedImport (flushed, not committed)
        """
        try:
            instance = FailedImport(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error creating FailedImport for {kwargs.get('file_name')}: {str(e)}",
                exc_info=True
            )
            raise

    async def update_fields(self, id: UUID, **fields) -> Optional[FailedImport]:
        """Set fields on an existing row and bump ``updated_at``."""
        try:
            instance = await self.get_by_id(id)
            if not instance:
                return None

            for key, value in fields.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)
            instance.updated_at = datetime.now(timezone.utc)

            await self.session.flush()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error updating FailedImport {id}: {str(e)}",
                exc_info=True
            )
            raise

    def _apply_filters(self, query, filters: Optional[QuarantineFilters]):
        if not filters:
            return query

        if filters.q:
            pattern = f"%{filters.q}%"
            query = query.where(
                or_(
                    FailedImport.file_name.ilike(pattern),
                    FailedImport.error_type.ilike(pattern),
                    FailedImport.error_message.ilike(pattern),
                )
            )
        if filters.error_type:
            query = query.where(FailedImport.error_type == filters.error_type.value)
        if filters.status:
            query = query.where(FailedImport.status == filters.status.value)
        return query

    async def list_filtered(
        self,
        filters: Optional[QuarantineFilters] = None,
        skip: int = 0,
        limit: int = 50,
        sort: str = "-attempted_at",
    ) -> List[FailedImport]:
        """List quarantined items.

        Args:
            filters: Text search, error type and status filters
            skip: Number of rows to skip
            limit: Maximum number of rows to return
            sort: Column name, prefixed with ``-`` for descending order

        Returns:
            Matching rows in the requested order
        """
        column_name = sort.lstrip("-")
        if column_name not in SORTABLE_COLUMNS:
            raise ValueError(f"Cannot sort failed imports by '{column_name}'")
        column = getattr(FailedImport, column_name)
        order = column.desc() if sort.startswith("-") else column.asc()

        try:
            query = self._apply_filters(select(FailedImport), filters)
            query = query.order_by(order).offset(skip).limit(limit)
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing failed imports: {str(e)}", exc_info=True)
            raise

    async def count_filtered(self, filters: Optional[QuarantineFilters] = None) -> int:
        """Count quarantined items matching ``filters``."""
        try:
            query = self._apply_filters(
                select(func.count()).select_from(FailedImport), filters
            )
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting failed imports: {str(e)}", exc_info=True)
            raise

    async def count_by(self, column_name: str) -> Dict[str, int]:
        """Row counts grouped by ``error_type`` or ``status``."""
        column = getattr(FailedImport, column_name)
        try:
            result = await self.session.execute(
                select(column, func.count()).group_by(column)
            )
            return {key: count for key, count in result.all()}
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error grouping failed imports by {column_name}: {str(e)}",
                exc_info=True
            )
            raise
