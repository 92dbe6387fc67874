"""Run worker jobs and decode queue messages into jobs."""

import json
import time
import uuid
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from advocate_etl.schemas.jobs import JobSource, WorkerJob, WorkerJobResult
from advocate_etl.utils.logging import get_logger
from advocate_etl.workers.context import IngestContext
from advocate_etl.workers.registry import WorkerRegistry

LOGGER = get_logger(__name__)

WORKER_NOT_FOUND = "WORKER_NOT_FOUND"
UNKNOWN_WORKER = "unknown"


async def handle_worker_job(
    job: WorkerJob,
    registry: WorkerRegistry,
    context: IngestContext,
) -> WorkerJobResult:
    """Dispatch a job to its worker and wrap the outcome.

    Unknown worker ids and handler exceptions are reported in the result,
    never raised.
    """
    job_id = job.job_id or str(uuid.uuid4())
    started = time.monotonic()

    def _elapsed_ms() -> int:
        return int((time.monotonic() - started) * 1000)

    worker = registry.get(job.worker_id)
    if worker is None:
        LOGGER.warning(f"Unknown worker: {job.worker_id}", extra={"job_id": job_id})
        return WorkerJobResult(
            success=False,
            message=f"Worker not found: {job.worker_id}",
            error=WORKER_NOT_FOUND,
            job_id=job_id,
            worker_id=job.worker_id,
            duration_ms=_elapsed_ms(),
        )

    LOGGER.info(
        f"Running worker {job.worker_id}",
        extra={"job_id": job_id, "source": job.source.value}
    )
    try:
        output = await worker.handler(job.input, context, job_id)
    except Exception as e:
        LOGGER.error(
            f"Worker {job.worker_id} failed: {str(e)}",
            exc_info=True,
            extra={"job_id": job_id}
        )
        return WorkerJobResult(
            success=False,
            message=f"Worker {job.worker_id} failed",
            error=str(e),
            job_id=job_id,
            worker_id=job.worker_id,
            duration_ms=_elapsed_ms(),
        )

    return WorkerJobResult(
        success=output.success,
        message=output.message,
        data=output.data,
        error=output.error,
        job_id=job_id,
        worker_id=job.worker_id,
        duration_ms=_elapsed_ms(),
    )


async def process_queue_message(
    message: Dict[str, Any],
    registry: WorkerRegistry,
    context: IngestContext,
) -> WorkerJobResult:
    """Decode a queue message ``{Body, MessageId, ReceiptHandle}`` and run its job."""
    message_id = message.get("MessageId") or str(uuid.uuid4())

    try:
        body = json.loads(message.get("Body") or "")
        if not isinstance(body, dict):
            raise ValueError("message body must be a JSON object")
        body.setdefault("job_id", message_id)
        body["source"] = JobSource.QUEUE.value
        body["metadata"] = {
            **(body.get("metadata") or {}),
            "message_id": message_id,
            "receipt_handle": message.get("ReceiptHandle"),
        }
        job = WorkerJob.model_validate(body)
    except (TypeError, ValueError, PydanticValidationError) as e:
        LOGGER.error(f"Invalid queue message {message_id}: {str(e)}")
        return WorkerJobResult(
            success=False,
            message="Invalid queue message",
            error=str(e),
            job_id=message_id,
            worker_id=UNKNOWN_WORKER,
        )

    return await handle_worker_job(job, registry, context)
