"""Validate-then-project step shared by first-time ingestion and quarantine retry."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from advocate_etl.core.exceptions import DatabaseError
from advocate_etl.schemas.canonical import CanonicalUser, DataQuality
from advocate_etl.schemas.jobs import ProjectionSummary
from advocate_etl.services.projection_service import ProjectionService
from advocate_etl.services.validation import assess_data_quality, validate_user_document

T = TypeVar("T")


@dataclass
class IngestOutcome:
    user: CanonicalUser
    data_quality: DataQuality
    projection: ProjectionSummary


async def _in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    user: CanonicalUser,
    work: Callable[[ProjectionService], Awaitable[T]],
) -> T:
    async with session_factory() as session:
        try:
            result = await work(ProjectionService(session))
            await session.commit()
            return result
        except DatabaseError:
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError(f"Failed to commit user {user.user_id}: {str(e)}", original_error=e)


async def validate_and_project(
    session_factory: async_sessionmaker[AsyncSession],
    parsed: Any,
) -> IngestOutcome:
    """Validate a parsed document and project it.

    Shared brand and program rows are committed in a short transaction of
    their own, then the user's rows in a second one. A failure in the second
    leaves no user, membership or task rows behind.

    Raises:
        ValidationError: If any field or cross-field rule fails
        DatabaseError: If projection or commit fails (the transaction is rolled back)
    """
    user = validate_user_document(parsed).unwrap()
    data_quality = assess_data_quality(user)

    await _in_transaction(session_factory, user, lambda service: service.project_shared(user))
    projection = await _in_transaction(
        session_factory,
        user,
        lambda service: service.project(user, data_quality, include_shared=False),
    )

    return IngestOutcome(user=user, data_quality=data_quality, projection=projection)
