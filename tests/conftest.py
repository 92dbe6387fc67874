"""Pytest configuration and shared fixtures."""

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from advocate_etl.core.database import DatabaseClient, create_session_factory
from advocate_etl.services.storage import LocalSourceStore

USER_ID = "0b7d7c9e-3f1a-4d8e-9a52-6c1f2e3d4a5b"
TASK_ID_1 = "5e2f1a3b-7c4d-4e6f-8a9b-0c1d2e3f4a5b"
TASK_ID_2 = "6f3a2b4c-8d5e-4f7a-9b0c-1d2e3f4a5b6c"

BASE_DOCUMENT: Dict[str, Any] = {
    "user_id": USER_ID,
    "name": "Jane Advocate",
    "email": "  Jane.Advocate@Example.com ",
    "instagram_handle": "@JaneInsta",
    "tiktok_handle": "@janetok",
    "joined_at": "2024-03-01T10:00:00Z",
    "advocacy_programs": [
        {
            "program_id": "prog-summer",
            "brand": "Acme Outdoors",
            "total_sales_attributed": "120.50",
            "tasks_completed": [
                {
                    "task_id": TASK_ID_1,
                    "platform": "Instagram",
                    "post_url": "https://instagram.com/p/abc",
                    "likes": 100,
                    "comments": "20",
                    "shares": 30,
                    "reach": 1000,
                },
                {
                    "task_id": TASK_ID_2,
                    "platform": "TikTok",
                    "post_url": "https://tiktok.com/@janetok/video/1",
                    "likes": "NaN",
                    "comments": -5,
                    "shares": "no",
                    "reach": 0,
                },
            ],
        }
    ],
}


@pytest.fixture
def make_document() -> Callable[..., Dict[str, Any]]:
    """Factory for a valid source document with top-level overrides.

    Returns:
        Callable returning a deep copy of the base document
    """
    def _make(**overrides: Any) -> Dict[str, Any]:
        document = copy.deepcopy(BASE_DOCUMENT)
        document.update(overrides)
        return document

    return _make


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    path = tmp_path / "users"
    path.mkdir()
    return path


@pytest.fixture
def source_store(source_dir: Path) -> LocalSourceStore:
    return LocalSourceStore(str(source_dir))


@pytest.fixture
def write_source(source_dir: Path) -> Callable[[str, Any], Path]:
    """Write a document (dict or raw text) into the source directory."""
    def _write(file_name: str, content: Any) -> Path:
        path = source_dir / file_name
        text = content if isinstance(content, str) else json.dumps(content)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest_asyncio.fixture
async def engine(tmp_path: Path):
    """File-backed SQLite engine with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await DatabaseClient(engine).create_tables()
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)
