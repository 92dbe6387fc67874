"""Repository for completed advocacy tasks."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from advocate_etl.database.models import Task
from advocate_etl.repositories.base_repository import BaseRepository

TASK_UPDATE_COLUMNS = (
    "user_id",
    "program_id",
    "membership_id",
    "brand_id",
    "brand_name",
    "platform",
    "post_url",
    "likes",
    "comments",
    "shares",
    "reach",
    "engagement_rate",
    "submitted_at",
)


class TaskRepository(BaseRepository[Task]):
    """Repository for Task model operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Task)

    async def upsert(
        self,
        task_id: UUID,
        user_id: UUID,
        program_id: str,
        membership_id: UUID,
        brand_id: UUID,
        brand_name: str,
        platform: str,
        post_url: Optional[str],
        likes: int,
        comments: int,
        shares: int,
        reach: int,
        engagement_rate: float,
        submitted_at: datetime,
    ) -> None:
        """Insert the task or overwrite it by ``task_id``."""
        await self._upsert(
            values={
                "task_id": task_id,
                "user_id": user_id,
                "program_id": program_id,
                "membership_id": membership_id,
                "brand_id": brand_id,
                "brand_name": brand_name,
                "platform": platform,
                "post_url": post_url,
                "likes": likes,
                "comments": comments,
                "shares": shares,
                "reach": reach,
                "engagement_rate": engagement_rate,
                "submitted_at": submitted_at,
            },
            conflict_columns=["task_id"],
            update_columns=TASK_UPDATE_COLUMNS,
        )
