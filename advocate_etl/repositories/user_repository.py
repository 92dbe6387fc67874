"""Repository for projected advocate users."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from advocate_etl.database.models import User
from advocate_etl.repositories.base_repository import BaseRepository

USER_UPDATE_COLUMNS = (
    "name",
    "email",
    "instagram_handle",
    "tiktok_handle",
    "joined_at",
    "status",
    "data_quality",
)


class UserRepository(BaseRepository[User]):
    """Repository for User model operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, User)

    async def upsert(
        self,
        user_id: UUID,
        name: str,
        email: str,
        instagram_handle: Optional[str],
        tiktok_handle: Optional[str],
        joined_at: Optional[datetime],
        data_quality: Optional[Dict[str, Any]] = None,
        status: str = "active",
    ) -> None:
        """Insert the user or overwrite its profile fields."""
        await self._upsert(
            values={
                "user_id": user_id,
                "name": name,
                "email": email,
                "instagram_handle": instagram_handle,
                "tiktok_handle": tiktok_handle,
                "joined_at": joined_at,
                "status": status,
                "data_quality": data_quality,
            },
            conflict_columns=["user_id"],
            update_columns=USER_UPDATE_COLUMNS,
        )
