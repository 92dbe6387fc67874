"""Repository for advocacy programs."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from advocate_etl.database.models import Program
from advocate_etl.repositories.base_repository import BaseRepository


class ProgramRepository(BaseRepository[Program]):
    """Repository for Program model operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Program)

    async def upsert(self, program_id: str, brand_id: UUID) -> None:
        """Insert the program or re-associate it with ``brand_id``."""
        await self._upsert(
            values={"program_id": program_id, "brand_id": brand_id},
            conflict_columns=["program_id"],
            update_columns=["brand_id"],
        )
