"""Tests for the worker registry, job dispatch and queue decoding."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from advocate_etl.core.config import EtlSettings, Settings
from advocate_etl.core.database import DatabaseClient
from advocate_etl.schemas.jobs import JobKind, JobSource, WorkerJob
from advocate_etl.workers import (
    IngestContext,
    WorkerRegistry,
    build_worker_registry,
    handle_worker_job,
    process_queue_message,
)
from advocate_etl.workers.dispatcher import WORKER_NOT_FOUND
from advocate_etl.workers.handlers import WorkerOutput


@pytest.fixture
def context(engine, session_factory, source_store):
    return IngestContext(
        settings=Settings(etl=EtlSettings(batch_size=2, concurrency=2)),
        session_factory=session_factory,
        source_store=source_store,
        db_client=DatabaseClient(engine),
    )


class TestWorkerRegistry:

    def test_built_registry_covers_every_kind(self):
        registry = build_worker_registry()

        assert {worker.kind for worker in registry.get_all_workers()} == set(JobKind)

    def test_unknown_id_returns_none(self):
        assert build_worker_registry().get("reticulate-splines") is None

    def test_duplicate_registration_rejected(self):
        registry = WorkerRegistry()
        registry.register(JobKind.ETL_BATCH, AsyncMock())

        with pytest.raises(ValueError):
            registry.register(JobKind.ETL_BATCH, AsyncMock())


class TestHandleWorkerJob:
    """Dispatch, result wrapping and failure capture."""

    @pytest.mark.asyncio
    async def test_unknown_worker(self):
        job = WorkerJob(worker_id="reticulate-splines", job_id="job-1")

        result = await handle_worker_job(job, build_worker_registry(), Mock())

        assert result.success is False
        assert result.error == WORKER_NOT_FOUND
        assert result.job_id == "job-1"
        assert result.worker_id == "reticulate-splines"

    @pytest.mark.asyncio
    async def test_handler_exception_is_captured(self):
        registry = WorkerRegistry()
        registry.register(JobKind.ETL_BATCH, AsyncMock(side_effect=RuntimeError("kaboom")))

        result = await handle_worker_job(WorkerJob(worker_id="etl-batch"), registry, Mock())

        assert result.success is False
        assert result.error == "kaboom"
        assert result.job_id

    @pytest.mark.asyncio
    async def test_handler_output_is_wrapped(self):
        handler = AsyncMock(return_value=WorkerOutput(success=True, message="done", data={"n": 1}))
        registry = WorkerRegistry()
        registry.register(JobKind.PROCESS_FILE, handler)
        context = Mock()
        job = WorkerJob(worker_id="process-file", input={"file_name": "a.json"}, job_id="job-9")

        result = await handle_worker_job(job, registry, context)

        assert result.success is True
        assert result.data == {"n": 1}
        assert result.duration_ms >= 0
        handler.assert_awaited_once_with({"file_name": "a.json"}, context, "job-9")

    @pytest.mark.asyncio
    async def test_process_file_worker(self, context, write_source, make_document):
        write_source("jane.json", make_document())
        job = WorkerJob(worker_id="process-file", input={"file_name": "jane.json"})

        result = await handle_worker_job(job, build_worker_registry(), context)

        assert result.success is True
        assert result.data["status"] == "done"

    @pytest.mark.asyncio
    async def test_process_file_worker_requires_name(self, context):
        result = await handle_worker_job(
            WorkerJob(worker_id="process-file"), build_worker_registry(), context
        )

        assert result.success is False
        assert result.error == "INVALID_INPUT"

    @pytest.mark.asyncio
    async def test_etl_batch_worker(self, context, write_source, make_document):
        write_source("jane.json", make_document())
        write_source("broken.json", "{]")

        result = await handle_worker_job(
            WorkerJob(worker_id="etl-batch"), build_worker_registry(), context
        )

        assert result.success is True
        assert result.data["total"] == 2
        assert result.data["successful"] == 1
        assert result.data["failed_files"][0]["file_name"] == "broken.json"
        assert "results" not in result.data

    @pytest.mark.asyncio
    async def test_etl_batch_worker_rejects_bad_parameters(self, context):
        job = WorkerJob(worker_id="etl-batch", input={"concurrency": 0})

        result = await handle_worker_job(job, build_worker_registry(), context)

        assert result.success is False
        assert "concurrency" in result.error


class TestProcessQueueMessage:
    """Queue messages carry a JSON job in their Body."""

    @pytest.mark.asyncio
    async def test_decodes_body_into_job(self):
        handler = AsyncMock(return_value=WorkerOutput(success=True, message="ok"))
        registry = WorkerRegistry()
        registry.register(JobKind.PROCESS_FILE, handler)
        message = {
            "Body": json.dumps({"worker_id": "process-file", "input": {"file_name": "a.json"}}),
            "MessageId": "msg-1",
            "ReceiptHandle": "receipt-1",
        }

        result = await process_queue_message(message, registry, Mock())

        assert result.success is True
        assert result.job_id == "msg-1"
        handler.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["not json", "[1, 2]", json.dumps({"input": {}}), None])
    async def test_malformed_body(self, body):
        message = {"Body": body, "MessageId": "msg-2"}

        result = await process_queue_message(message, build_worker_registry(), Mock())

        assert result.success is False
        assert result.worker_id == "unknown"
        assert result.job_id == "msg-2"

    def test_job_source_defaults_to_cli(self):
        assert WorkerJob(worker_id="etl-batch").source == JobSource.CLI
