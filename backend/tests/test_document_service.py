import asyncio
import sqlite3
import time

import pytest
from sqlalchemy import exc as sa_exc, text

from lk_documents.errors import (
    AdmissionRejectedError,
    DocumentValidationError,
    PermanentPersistenceError,
    ReferentialIntegrityError,
    TransientPersistenceError,
)
from lk_documents.schemas.document import DocumentCreate, DocumentDto
from lk_documents.services.document_service import DocumentService, RetryPolicy
from lk_documents.services.limiter import TimeUnit


class ScriptedLimiter:
    """Answers try_acquire from a script, then repeats ``default``."""

    request_limit = 1
    time_unit = TimeUnit.SECONDS
    stable_interval = 1.0

    def __init__(self, script=(), default=False):
        self.script = list(script)
        self.default = default
        self.calls = 0

    def try_acquire(self):
        self.calls += 1
        if self.script:
            return self.script.pop(0)
        return self.default


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class BrokenSession:
    def __init__(self, error):
        self.error = error

    def add(self, obj):
        pass

    def flush(self):
        raise self.error

    def commit(self):
        pass

    def rollback(self):
        pass

    def close(self):
        pass


@pytest.fixture
def dto(document_payload):
    return DocumentCreate(**document_payload)


class TestAdmissionRetry:
    @pytest.mark.asyncio
    async def test_gives_up_after_ten_attempts(self, test_db, dto):
        limiter = ScriptedLimiter(default=False)
        sleep = RecordingSleep()
        service = DocumentService(limiter, test_db, sleep=sleep)

        with pytest.raises(AdmissionRejectedError) as excinfo:
            await service.create_document(dto)

        assert limiter.calls == 10
        assert sleep.delays == [0.005] * 9
        assert "per SECONDS" in str(excinfo.value)
        assert excinfo.value.retry_after == 1

    @pytest.mark.asyncio
    async def test_succeeds_once_admitted(self, test_db, dto):
        limiter = ScriptedLimiter(script=[False, False, False], default=True)
        sleep = RecordingSleep()
        service = DocumentService(limiter, test_db, sleep=sleep)

        result = await service.create_document(dto)

        assert result.doc_id is not None and result.doc_id > 0
        assert result.reg_date is not None
        assert result.production_date is not None
        assert limiter.calls == 4
        assert len(sleep.delays) == 3

    @pytest.mark.asyncio
    async def test_last_attempt_can_still_succeed(self, test_db, dto):
        limiter = ScriptedLimiter(script=[False] * 9, default=True)
        service = DocumentService(limiter, test_db, sleep=RecordingSleep())

        result = await service.create_document(dto)
        assert result.doc_id is not None
        assert limiter.calls == 10

    @pytest.mark.asyncio
    async def test_custom_policy(self, test_db, dto):
        limiter = ScriptedLimiter(default=False)
        sleep = RecordingSleep()
        policy = RetryPolicy(max_attempts=3, backoff_seconds=0.02)
        service = DocumentService(limiter, test_db, retry=policy, sleep=sleep)

        with pytest.raises(AdmissionRejectedError):
            await service.create_document(dto)
        assert limiter.calls == 3
        assert sleep.delays == [0.02, 0.02]

    @pytest.mark.asyncio
    async def test_real_backoff_waits_between_attempts(self, test_db, dto):
        limiter = ScriptedLimiter(default=False)
        service = DocumentService(limiter, test_db)

        started = time.monotonic()
        with pytest.raises(AdmissionRejectedError):
            await service.create_document(dto)
        assert time.monotonic() - started >= 9 * 0.005

    @pytest.mark.asyncio
    async def test_cancel_during_backoff_stops_retrying(self, test_db, dto):
        limiter = ScriptedLimiter(default=False)
        service = DocumentService(limiter, test_db, retry=RetryPolicy(backoff_seconds=10))

        task = asyncio.create_task(service.create_document(dto))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert limiter.calls == 1


class TestPersistenceErrors:
    @pytest.mark.asyncio
    async def test_transient_error_is_not_retried(self, dto):
        error = sa_exc.OperationalError(
            "INSERT INTO document", {}, sqlite3.OperationalError("database is locked")
        )
        limiter = ScriptedLimiter(default=True)
        service = DocumentService(limiter, lambda: BrokenSession(error), sleep=RecordingSleep())

        with pytest.raises(TransientPersistenceError):
            await service.create_document(dto)
        assert limiter.calls == 1

    @pytest.mark.asyncio
    async def test_permanent_error_is_not_retried(self, dto):
        error = sa_exc.IntegrityError(
            "INSERT INTO document", {}, sqlite3.IntegrityError("CHECK constraint failed")
        )
        limiter = ScriptedLimiter(default=True)
        service = DocumentService(limiter, lambda: BrokenSession(error), sleep=RecordingSleep())

        with pytest.raises(PermanentPersistenceError):
            await service.create_document(dto)
        assert limiter.calls == 1

    @pytest.mark.asyncio
    async def test_referential_miss_is_not_retried(self, test_db, document_payload):
        limiter = ScriptedLimiter(default=True)
        service = DocumentService(limiter, test_db, sleep=RecordingSleep())
        dto = DocumentCreate(**{**document_payload, "products": [9999999]})

        with pytest.raises(ReferentialIntegrityError):
            await service.create_document(dto)
        assert limiter.calls == 1


class TestIdentity:
    @pytest.mark.asyncio
    async def test_successive_calls_get_distinct_ids(self, test_db, dto):
        service = DocumentService(ScriptedLimiter(default=True), test_db)
        first = await service.create_document(dto)
        second = await service.create_document(dto)
        assert first.doc_id != second.doc_id


class TestPlainDto:
    @pytest.mark.asyncio
    async def test_duplicate_products_rejected_without_writing(self, test_db, document_payload):
        dto = DocumentDto(**{**document_payload, "products": [3, 3]})
        service = DocumentService(ScriptedLimiter(default=True), test_db)

        with pytest.raises(DocumentValidationError):
            await service.create_document(dto)
        with test_db() as db:
            assert db.execute(text("SELECT count(*) FROM document")).scalar() == 0
