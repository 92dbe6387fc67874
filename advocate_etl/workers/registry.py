from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from advocate_etl.schemas.jobs import JobKind
from advocate_etl.workers.context import IngestContext
from advocate_etl.workers.handlers import WorkerOutput, etl_batch, extract_files, process_file

WorkerHandler = Callable[[Dict[str, Any], IngestContext, str], Awaitable[WorkerOutput]]


@dataclass
class WorkerMetadata:
    """Metadata for worker discovery."""
    kind: JobKind
    handler: WorkerHandler
    description: str


class WorkerRegistry:
    """Maps each JobKind to its handler. Built once at startup."""

    def __init__(self):
        self._workers: Dict[JobKind, WorkerMetadata] = {}

    def register(self, kind: JobKind, handler: WorkerHandler, description: str = "") -> None:
        if kind in self._workers:
            raise ValueError(f"Worker already registered: {kind.value}")
        self._workers[kind] = WorkerMetadata(kind=kind, handler=handler, description=description)

    def get(self, worker_id: str) -> Optional[WorkerMetadata]:
        """Look up a worker by its id, or None for unknown ids."""
        try:
            return self._workers.get(JobKind(worker_id))
        except ValueError:
            return None

    def get_all_workers(self) -> List[WorkerMetadata]:
        return list(self._workers.values())


def build_worker_registry() -> WorkerRegistry:
    """Create the registry with every built-in worker."""
    registry = WorkerRegistry()
    registry.register(JobKind.PROCESS_FILE, process_file, "Process a single source file")
    registry.register(JobKind.ETL_BATCH, etl_batch, "Process all source files in batches")
    registry.register(JobKind.EXTRACT_FILES, extract_files, "Extract the source archive")
    return registry
