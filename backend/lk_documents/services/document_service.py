import asyncio
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import sessionmaker

from lk_documents.database import SessionLocal, UnitOfWork
from lk_documents.errors import AdmissionRejectedError, PersistenceError
from lk_documents.repositories.document_repository import DocumentRepository
from lk_documents.schemas.document import DocumentDto
from lk_documents.services.document_mapper import DocumentMapper
from lk_documents.services.limiter import AdmissionLimiter

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    PENDING = "PENDING"
    BACKOFF = "BACKOFF"
    WRITING = "WRITING"
    DONE = "DONE"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry applied to admission rejections only."""

    max_attempts: int = 10
    backoff_seconds: float = 0.005

    @classmethod
    def from_settings(cls, retry_settings) -> "RetryPolicy":
        return cls(
            max_attempts=retry_settings.max_attempts,
            backoff_seconds=retry_settings.backoff_ms / 1000,
        )


class DocumentService:
    def __init__(
        self,
        limiter: AdmissionLimiter,
        session_factory: sessionmaker = SessionLocal,
        *,
        mapper: DocumentMapper | None = None,
        retry: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.limiter = limiter
        self.session_factory = session_factory
        self.mapper = mapper or DocumentMapper()
        self.retry = retry
        self._sleep = sleep

    async def create_document(self, dto: DocumentDto) -> DocumentDto:
        """Admit, persist and return the stored document.

        Admission rejections are retried up to ``retry.max_attempts`` times in
        total with a fixed backoff; the last rejection is raised. Persistence
        errors are raised on the first occurrence.
        """
        attempt = 0
        while True:
            attempt += 1
            self._transition(RequestState.PENDING, attempt)
            try:
                return await self._attempt(dto, attempt)
            except AdmissionRejectedError:
                if attempt >= self.retry.max_attempts:
                    self._transition(RequestState.REJECTED, attempt)
                    logger.warning(
                        "Admission rejected after %d attempts (%s)", attempt, self.limiter
                    )
                    raise
                self._transition(RequestState.BACKOFF, attempt)
                # Cancelling the request task interrupts the sleep and ends the loop.
                await self._sleep(self.retry.backoff_seconds)

    async def _attempt(self, dto: DocumentDto, attempt: int) -> DocumentDto:
        if not self.limiter.try_acquire():
            raise AdmissionRejectedError(
                f"Exceeded the admission limit of {self.limiter.request_limit} "
                f"per {self.limiter.time_unit.name}",
                retry_after=max(1, math.ceil(self.limiter.stable_interval)),
            )
        self._transition(RequestState.WRITING, attempt)
        try:
            result = await run_in_threadpool(self._write, dto)
        except PersistenceError as exc:
            self._transition(RequestState.FAILED, attempt)
            log = logger.warning if exc.retryable else logger.error
            log("Document write failed: %s", exc)
            raise
        except Exception:
            self._transition(RequestState.FAILED, attempt)
            raise
        self._transition(RequestState.DONE, attempt)
        logger.info("Accepted document %s", result.doc_id)
        return result

    def _write(self, dto: DocumentDto) -> DocumentDto:
        with UnitOfWork(self.session_factory) as uow:
            aggregate = self.mapper.to_entity(dto)
            saved = DocumentRepository(uow.session).save(aggregate)
            return self.mapper.to_dto(saved)

    @staticmethod
    def _transition(state: RequestState, attempt: int):
        logger.debug("create_document attempt %d -> %s", attempt, state.value)
