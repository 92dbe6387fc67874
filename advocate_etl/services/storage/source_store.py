"""Source store abstraction and the local-directory implementation."""

import asyncio
from pathlib import Path
from typing import List, Protocol, runtime_checkable

from advocate_etl.core.exceptions import StorageError
from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)

SOURCE_SUFFIX = ".json"
# AppleDouble metadata files shipped alongside archives built on macOS
METADATA_PREFIX = "._"


def is_source_file(name: str) -> bool:
    """True for ``*.json`` names that are not AppleDouble metadata."""
    return name.endswith(SOURCE_SUFFIX) and not name.startswith(METADATA_PREFIX)


@runtime_checkable
class SourceStore(Protocol):
    """Where raw advocate documents are read from and quarantined to."""

    async def list_files(self) -> List[str]:
        ...

    async def read_file(self, file_name: str) -> str:
        ...

    async def delete_file(self, file_name: str) -> None:
        ...

    async def move_to_quarantine(self, file_name: str) -> str:
        ...

    async def delete_quarantined(self, file_name: str) -> bool:
        ...


class LocalSourceStore:
    """Source files in a local directory, quarantined into a sub-directory."""

    def __init__(self, base_path: str, quarantine_dir: str = "failed"):
        self.base_path = Path(base_path)
        self.quarantine_path = self.base_path / quarantine_dir

    def _source(self, file_name: str) -> Path:
        return self.base_path / file_name

    def quarantined(self, file_name: str) -> Path:
        return self.quarantine_path / file_name

    async def list_files(self) -> List[str]:
        """List source file names, sorted."""
        def _list() -> List[str]:
            if not self.base_path.is_dir():
                raise StorageError(f"Source directory does not exist: {self.base_path}")
            return sorted(
                entry.name
                for entry in self.base_path.iterdir()
                if entry.is_file() and is_source_file(entry.name)
            )

        return await asyncio.to_thread(_list)

    async def read_file(self, file_name: str) -> str:
        try:
            return await asyncio.to_thread(self._source(file_name).read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {file_name}: {str(e)}", original_error=e)

    async def delete_file(self, file_name: str) -> None:
        try:
            await asyncio.to_thread(self._source(file_name).unlink)
        except OSError as e:
            raise StorageError(f"Failed to delete {file_name}: {str(e)}", original_error=e)

    async def move_to_quarantine(self, file_name: str) -> str:
        """Move a source file under the quarantine directory.

        Returns:
            Path of the quarantined file
        """
        target = self.quarantined(file_name)

        def _move() -> None:
            self.quarantine_path.mkdir(parents=True, exist_ok=True)
            self._source(file_name).replace(target)

        try:
            await asyncio.to_thread(_move)
        except OSError as e:
            raise StorageError(f"Failed to quarantine {file_name}: {str(e)}", original_error=e)

        LOGGER.info(f"Moved {file_name} to quarantine", extra={"path": str(target)})
        return str(target)

    async def delete_quarantined(self, file_name: str) -> bool:
        """Remove a quarantined file. Returns False if it was already gone."""
        path = self.quarantined(file_name)
        try:
            await asyncio.to_thread(path.unlink)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete quarantined {file_name}: {str(e)}", original_error=e)
