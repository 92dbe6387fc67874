from typing import Any, Callable, Dict, Generic, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from advocate_etl.utils.logging import get_logger

# Define a generic type for SQLAlchemy models
ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class BaseRepository(Generic[ModelType]):
    """Base repository implementing common read, delete and upsert operations.

    Repositories never commit: the calling service owns the transaction.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    @property
    def _pk(self):
        return self.model.__mapper__.primary_key[0]

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get a record by its primary key.

        Args:
            id: Primary key value

        Returns:
            The record if found, None otherwise
        """
        try:
            query = select(self.model).where(self._pk == id)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving {self.model.__name__} by ID {id}: {str(e)}",
                exc_info=True
            )
            raise

    async def delete(self, id: Any) -> bool:
        """Delete a record by primary key.

        Returns:
            True if deleted, False if not found
        """
        try:
            result = await self.session.execute(delete(self.model).where(self._pk == id))
            await self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error deleting {self.model.__name__} {id}: {str(e)}",
                exc_info=True
            )
            raise

    async def count(self) -> int:
        """Count all records."""
        try:
            result = await self.session.execute(select(func.count()).select_from(self.model))
            return result.scalar_one()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error counting {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise

    def _insert(self):
        """Dialect-specific INSERT construct supporting ON CONFLICT."""
        dialect = self.session.get_bind().dialect.name
        try:
            return _INSERT_BY_DIALECT[dialect](self.model)
        except KeyError:
            raise NotImplementedError(f"Upsert is not supported on dialect '{dialect}'")

    async def _insert_ignore(self, values: Dict[str, Any], conflict_columns: Sequence[str]) -> None:
        """INSERT ... ON CONFLICT DO NOTHING.

        For rows fully determined by their key. An existing row is left as is
        and is not locked.
        """
        stmt = self._insert().values(**values).on_conflict_do_nothing(
            index_elements=list(conflict_columns)
        )
        try:
            await self.session.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error inserting {self.model.__name__}: {str(e)}",
                exc_info=True,
                extra={"conflict_columns": list(conflict_columns)}
            )
            raise

    async def _upsert(
        self,
        values: Dict[str, Any],
        conflict_columns: Sequence[str],
        update_columns: Sequence[str],
        overrides: Optional[Callable[[Any], Dict[str, Any]]] = None,
    ) -> None:
        """INSERT ... ON CONFLICT DO UPDATE, refreshing ``updated_at``.

        Args:
            values: Column values for the inserted row
            conflict_columns: Columns of the unique constraint to match on
            update_columns: Columns overwritten from the incoming row on conflict
            overrides: Builds SQL expressions, given the insert statement, that
                replace the plain overwrite for some columns
        """
        stmt = self._insert().values(**values)
        set_ = {column: stmt.excluded[column] for column in update_columns}
        if overrides:
            set_.update(overrides(stmt))
        if hasattr(self.model, "updated_at"):
            set_["updated_at"] = func.now()

        stmt = stmt.on_conflict_do_update(index_elements=list(conflict_columns), set_=set_)

        try:
            await self.session.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error upserting {self.model.__name__}: {str(e)}",
                exc_info=True,
                extra={"conflict_columns": list(conflict_columns)}
            )
            raise
