"""Command-line entry point: ``advocate-etl``."""

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, Dict, Optional

import click

from advocate_etl.core.config import get_settings
from advocate_etl.schemas.jobs import JobKind, JobSource, WorkerJob
from advocate_etl.services.quarantine_service import QuarantineService
from advocate_etl.utils.logging import set_log_level
from advocate_etl.workers import (
    IngestContext,
    build_worker_registry,
    create_ingest_context,
    handle_worker_job,
)


def _run_with_context(action: Callable[[IngestContext], Awaitable[Any]]) -> Any:
    async def _main() -> Any:
        context = create_ingest_context(get_settings())
        try:
            return await action(context)
        finally:
            await context.close()

    return asyncio.run(_main())


def _echo_json(payload: Dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _run_job(worker: JobKind, job_input: Dict[str, Any]) -> None:
    registry = build_worker_registry()
    job = WorkerJob(worker_id=worker.value, input=job_input, source=JobSource.CLI)

    result = _run_with_context(lambda context: handle_worker_job(job, registry, context))
    _echo_json(result.model_dump(mode="json"))
    if not result.success:
        sys.exit(1)


@click.group()
def cli() -> None:
    """Advocate ETL: repair, validate and project advocate JSON files."""
    set_log_level(get_settings().log_level)


@cli.command("run-batch")
@click.option("--batch-size", type=int, default=None, help="Files per chunk (ETL_BATCH_SIZE).")
@click.option("--concurrency", type=int, default=None, help="Files in flight per chunk (ETL_CONCURRENCY).")
def run_batch(batch_size: Optional[int], concurrency: Optional[int]) -> None:
    """Process every source file."""
    job_input: Dict[str, Any] = {}
    if batch_size is not None:
        job_input["batch_size"] = batch_size
    if concurrency is not None:
        job_input["concurrency"] = concurrency
    _run_job(JobKind.ETL_BATCH, job_input)


@cli.command("process-file")
@click.argument("file_name")
def process_file(file_name: str) -> None:
    """Process a single source file by name."""
    _run_job(JobKind.PROCESS_FILE, {"file_name": file_name})


@cli.command("extract")
@click.option("--archive", "archive_path", default=None, help="Archive to extract (ARCHIVE_PATH).")
@click.option("--clean-target/--no-clean-target", default=True, help="Empty the source directory first.")
@click.option("--clean-database/--no-clean-database", default=True, help="Delete all rows first.")
def extract(archive_path: Optional[str], clean_target: bool, clean_database: bool) -> None:
    """Extract the source archive into the local source directory."""
    job_input: Dict[str, Any] = {"clean_target": clean_target, "clean_database": clean_database}
    if archive_path:
        job_input["archive_path"] = archive_path
    _run_job(JobKind.EXTRACT_FILES, job_input)


@cli.command("init-db")
@click.option("--drop-existing", is_flag=True, help="Drop all tables before creating them.")
def init_db(drop_existing: bool) -> None:
    """Create the database tables."""
    _run_with_context(lambda context: context.db_client.auto_migrate(drop_existing=drop_existing))
    click.echo("Database schema is up to date")


@cli.command("retry")
@click.argument("item_ids", nargs=-1, required=True)
@click.option("--force", is_flag=True, help="Retry items that reached the retry limit.")
def retry(item_ids: tuple, force: bool) -> None:
    """Retry quarantined documents by id."""
    async def _retry(context: IngestContext):
        service = QuarantineService(
            context.session_factory,
            context.source_store,
            max_retries=context.settings.etl.max_retries,
        )
        return await service.batch_retry(item_ids, force=force)

    result = _run_with_context(_retry)
    _echo_json(result.model_dump(mode="json"))
    if result.failed:
        sys.exit(1)


@cli.command("health")
def health() -> None:
    """Check that the database is reachable."""
    result = _run_with_context(lambda context: context.db_client.health_check())
    _echo_json(result)
    if result["status"] != "healthy":
        sys.exit(1)


@cli.command("quarantine-stats")
def quarantine_stats() -> None:
    """Show quarantine totals by error type and status."""
    async def _stats(context: IngestContext):
        return await QuarantineService(context.session_factory, context.source_store).stats()

    _echo_json(_run_with_context(_stats).model_dump(mode="json"))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
