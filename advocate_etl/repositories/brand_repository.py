"""Repository for brands."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from advocate_etl.database.models import Brand
from advocate_etl.repositories.base_repository import BaseRepository


class BrandRepository(BaseRepository[Brand]):
    """Repository for Brand model operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Brand)

    async def upsert(self, brand_id: UUID, name: str) -> None:
        """Create the brand unless it exists.

        The id is derived from the name, so an existing row never needs updating.
        """
        await self._insert_ignore(
            values={"brand_id": brand_id, "name": name},
            conflict_columns=["brand_id"],
        )
