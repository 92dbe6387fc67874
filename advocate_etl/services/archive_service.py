"""Extract an archive of source documents into the local source directory."""

import asyncio
import shutil
import tarfile
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple

from advocate_etl.core.database import DatabaseClient
from advocate_etl.core.exceptions import StorageError
from advocate_etl.schemas.jobs import ExtractSummary
from advocate_etl.services.storage.source_store import is_source_file
from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _is_safe_member(member: tarfile.TarInfo) -> bool:
    path = PurePosixPath(member.name)
    return not path.is_absolute() and ".." not in path.parts


def clean_directory(directory: Path) -> int:
    """Remove every entry inside ``directory`` but keep the directory itself."""
    removed = 0
    for entry in directory.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed += 1
    return removed


def extract_source_files(archive_path: Path, target_dir: Path) -> Tuple[int, int]:
    """Extract ``*.json`` members of a .tar.gz flat into ``target_dir``.

    Leading directories are dropped. Non-regular members, AppleDouble
    metadata and members with absolute or parent-relative paths are skipped.

    Returns:
        (files extracted, members skipped)
    """
    extracted = 0
    skipped = 0
    with tarfile.open(archive_path, "r:gz") as archive:
        for member in archive:
            name = PurePosixPath(member.name).name
            if not member.isfile() or not _is_safe_member(member) or not is_source_file(name):
                if member.isfile():
                    skipped += 1
                continue

            source = archive.extractfile(member)
            if source is None:
                skipped += 1
                continue
            with source, open(target_dir / name, "wb") as target:
                shutil.copyfileobj(source, target)
            extracted += 1

    return extracted, skipped


class ArchiveService:
    """Loads a source archive, optionally wiping previous data first."""

    def __init__(self, db_client: Optional[DatabaseClient] = None):
        self.db_client = db_client

    async def extract(
        self,
        archive_path: str,
        target_dir: str,
        clean_target: bool = True,
        clean_database: bool = True,
        job_id: Optional[str] = None,
    ) -> ExtractSummary:
        """Extract the archive into ``target_dir``.

        Args:
            archive_path: Path to the .tar.gz archive
            target_dir: Local source directory to extract into
            clean_target: Empty ``target_dir`` before extracting
            clean_database: Delete all projected and quarantined rows first
            job_id: Optional job ID used for log correlation

        Raises:
            StorageError: If the archive is missing or cannot be read
        """
        archive = Path(archive_path)
        target = Path(target_dir)
        log_extra = {"job_id": job_id, "archive_path": str(archive), "target_dir": str(target)}

        if not archive.is_file():
            raise StorageError(f"Archive file not found: {archive}")
        archive_size = archive.stat().st_size
        LOGGER.info(f"Extracting archive ({archive_size} bytes)", extra=log_extra)

        if clean_database:
            if self.db_client is None:
                raise StorageError("clean_database requested without a database client")
            await self.db_client.truncate_tables()

        target.mkdir(parents=True, exist_ok=True)
        if clean_target:
            removed = await asyncio.to_thread(clean_directory, target)
            LOGGER.info(f"Removed {removed} entries from target directory", extra=log_extra)

        try:
            extracted, skipped = await asyncio.to_thread(extract_source_files, archive, target)
        except (tarfile.TarError, OSError) as e:
            LOGGER.error(f"Archive extraction failed: {str(e)}", exc_info=True, extra=log_extra)
            raise StorageError(f"Failed to extract {archive}: {str(e)}", original_error=e)

        LOGGER.info(
            f"Extraction complete: {extracted} files extracted",
            extra={**log_extra, "skipped_members": skipped}
        )
        return ExtractSummary(
            archive_path=str(archive),
            extracted_to=str(target),
            archive_size=archive_size,
            files_extracted=extracted,
            skipped_members=skipped,
            target_cleaned=clean_target,
            database_cleaned=clean_database,
        )
