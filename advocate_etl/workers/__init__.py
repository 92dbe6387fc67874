"""Worker registry, job dispatch and ingest context."""

from advocate_etl.workers.context import IngestContext, create_ingest_context
from advocate_etl.workers.dispatcher import handle_worker_job, process_queue_message
from advocate_etl.workers.registry import WorkerRegistry, build_worker_registry

__all__ = [
    "IngestContext",
    "WorkerRegistry",
    "build_worker_registry",
    "create_ingest_context",
    "handle_worker_job",
    "process_queue_message",
]
