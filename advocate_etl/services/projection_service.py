"""Project a canonical user onto the User, Brand, Program, Membership and Task tables.

Every write is an idempotent upsert, and no write depends on a prior read, so
re-processing a document converges to the same state.

Brands and programs are shared between documents. They are written first,
brands then programs, each in ascending key order, so concurrent transactions
always take their row locks in the same order. The document pipeline commits
them in a short transaction of their own before the per-user rows.
"""

from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from advocate_etl.core.exceptions import DatabaseError
from advocate_etl.repositories.brand_repository import BrandRepository
from advocate_etl.repositories.membership_repository import MembershipRepository
from advocate_etl.repositories.program_repository import ProgramRepository
from advocate_etl.repositories.task_repository import TaskRepository
from advocate_etl.repositories.user_repository import UserRepository
from advocate_etl.schemas.canonical import CanonicalProgram, CanonicalUser, DataQuality, Platform
from advocate_etl.schemas.jobs import ProjectionSummary
from advocate_etl.utils.identifiers import brand_id_for, membership_id_for
from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_PLATFORM = Platform.INSTAGRAM


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _is_projectable(program: CanonicalProgram) -> bool:
    return bool(program.program_id) and program.brand_name is not None


class ProjectionService:
    """Writes one canonical user into the target tables.

    The caller owns the session's transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.brands = BrandRepository(session)
        self.programs = ProgramRepository(session)
        self.memberships = MembershipRepository(session)
        self.tasks = TaskRepository(session)

    async def project_shared(self, user: CanonicalUser) -> None:
        """Upsert the brands and programs referenced by ``user``.

        Raises:
            DatabaseError: If any statement fails
        """
        try:
            await self._upsert_shared(user)
        except SQLAlchemyError as e:
            LOGGER.error(
                "Brand/program projection failed",
                exc_info=True,
                extra={"user_id": str(user.user_id)}
            )
            raise DatabaseError(
                f"Failed to project brands and programs for user {user.user_id}: {str(e)}",
                original_error=e,
            )

    async def _upsert_shared(self, user: CanonicalUser) -> None:
        brands: Dict[UUID, str] = {}
        programs: Dict[str, UUID] = {}
        for program in filter(_is_projectable, user.programs):
            brand_id = brand_id_for(program.brand_name)
            brands[brand_id] = program.brand_name
            programs[program.program_id] = brand_id

        for brand_id in sorted(brands, key=str):
            await self.brands.upsert(brand_id=brand_id, name=brands[brand_id])
        for program_id in sorted(programs):
            await self.programs.upsert(program_id=program_id, brand_id=programs[program_id])

    async def project(
        self,
        user: CanonicalUser,
        data_quality: Optional[DataQuality] = None,
        include_shared: bool = True,
    ) -> ProjectionSummary:
        """Upsert the user and fan out to memberships and tasks.

        Args:
            user: Validated canonical user
            data_quality: Optional data-quality summary stored on the user row
            include_shared: Also upsert brands and programs first. Pass False
                when ``project_shared`` already ran in an earlier transaction.

        Returns:
            ProjectionSummary with counts of projected and skipped rows

        Raises:
            DatabaseError: If any statement fails
        """
        now = datetime.now(timezone.utc)
        joined_at = _as_utc(user.joined_at) if user.joined_at else None
        summary = ProjectionSummary(user_id=user.user_id)

        try:
            if include_shared:
                await self._upsert_shared(user)

            await self.users.upsert(
                user_id=user.user_id,
                name=user.name,
                email=user.email,
                instagram_handle=user.instagram_handle,
                tiktok_handle=user.tiktok_handle,
                joined_at=joined_at,
                data_quality=data_quality.model_dump() if data_quality else None,
            )

            for program in user.programs:
                if not _is_projectable(program):
                    summary.skipped_programs += 1
                    continue

                brand_id = brand_id_for(program.brand_name)
                membership_id = membership_id_for(user.user_id, program.program_id)

                await self.memberships.upsert(
                    membership_id=membership_id,
                    user_id=user.user_id,
                    program_id=program.program_id,
                    brand_id=brand_id,
                    # A first insert without a join date falls back to processing time
                    joined_at=joined_at or now,
                    tasks_completed=len(program.tasks),
                    sales_attributed=program.total_sales_attributed,
                )
                summary.programs += 1

                for task in program.tasks:
                    if task.task_id is None:
                        summary.skipped_tasks += 1
                        continue

                    await self.tasks.upsert(
                        task_id=task.task_id,
                        user_id=user.user_id,
                        program_id=program.program_id,
                        membership_id=membership_id,
                        brand_id=brand_id,
                        brand_name=program.brand_name,
                        platform=(task.platform or DEFAULT_PLATFORM).value,
                        post_url=task.post_url,
                        likes=task.likes,
                        comments=task.comments,
                        shares=task.shares,
                        reach=task.reach,
                        engagement_rate=task.engagement_rate,
                        submitted_at=now,
                    )
                    summary.tasks += 1

        except SQLAlchemyError as e:
            LOGGER.error(
                "Projection failed",
                exc_info=True,
                extra={"user_id": str(user.user_id)}
            )
            raise DatabaseError(f"Failed to project user {user.user_id}: {str(e)}", original_error=e)

        LOGGER.debug(
            "User projected",
            extra={
                "user_id": str(user.user_id),
                "programs": summary.programs,
                "tasks": summary.tasks,
            }
        )
        return summary
