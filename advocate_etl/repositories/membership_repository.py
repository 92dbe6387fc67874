"""Repository for user x program memberships."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import case, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from advocate_etl.database.models import ProgramMembership
from advocate_etl.repositories.base_repository import BaseRepository


class MembershipRepository(BaseRepository[ProgramMembership]):
    """Repository for ProgramMembership model operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ProgramMembership)

    async def upsert(
        self,
        membership_id: UUID,
        user_id: UUID,
        program_id: str,
        brand_id: UUID,
        joined_at: datetime,
        tasks_completed: int,
        sales_attributed: float,
    ) -> None:
        """Upsert a membership keyed by (user_id, program_id).

        Counters are overwritten from the incoming document. ``joined_at``
        only ever moves earlier: the stored value is replaced when it is NULL
        or later than the incoming one.
        """
        stored = ProgramMembership.__table__.c.joined_at

        def earliest_joined_at(stmt):
            incoming = stmt.excluded.joined_at
            return {
                "joined_at": case(
                    (or_(stored.is_(None), incoming < stored), incoming),
                    else_=stored,
                )
            }

        await self._upsert(
            values={
                "membership_id": membership_id,
                "user_id": user_id,
                "program_id": program_id,
                "brand_id": brand_id,
                "joined_at": joined_at,
                "tasks_completed": tasks_completed,
                "sales_attributed": sales_attributed,
            },
            conflict_columns=["user_id", "program_id"],
            update_columns=["brand_id", "tasks_completed", "sales_attributed"],
            overrides=earliest_joined_at,
        )

    async def get_by_user_and_program(
        self, user_id: UUID, program_id: str
    ) -> Optional[ProgramMembership]:
        """Get the membership for a (user, program) pair."""
        try:
            query = select(ProgramMembership).where(
                ProgramMembership.user_id == user_id,
                ProgramMembership.program_id == program_id,
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving membership for user {user_id} program {program_id}: {str(e)}",
                exc_info=True
            )
            raise
