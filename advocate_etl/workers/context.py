"""Explicit dependencies handed to every worker run."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from advocate_etl.core.config import Settings
from advocate_etl.core.database import DatabaseClient, create_engine, create_session_factory
from advocate_etl.services.storage import SourceStore, get_source_store


@dataclass
class IngestContext:
    """Settings, database access and source store for one process."""
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    source_store: SourceStore
    db_client: DatabaseClient

    async def close(self) -> None:
        close_store = getattr(self.source_store, "close", None)
        if close_store is not None:
            await close_store()
        await self.db_client.disconnect()


def create_ingest_context(settings: Settings) -> IngestContext:
    """Build the engine, session factory and source store from settings."""
    engine = create_engine(settings)
    return IngestContext(
        settings=settings,
        session_factory=create_session_factory(engine),
        source_store=get_source_store(settings),
        db_client=DatabaseClient(engine),
    )
