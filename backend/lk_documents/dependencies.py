from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from lk_documents.config import settings
from lk_documents.database import SessionLocal
from lk_documents.services.document_service import DocumentService, RetryPolicy
from lk_documents.services.limiter import AdmissionLimiter


@lru_cache
def get_limiter() -> AdmissionLimiter:
    # One limiter per process; every worker shares this instance.
    return AdmissionLimiter.from_settings(settings.concurrency.limiter)


def get_session_factory() -> sessionmaker:
    return SessionLocal


def get_document_service(
    limiter: AdmissionLimiter = Depends(get_limiter),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> DocumentService:
    return DocumentService(
        limiter,
        session_factory,
        retry=RetryPolicy.from_settings(settings.concurrency.retry),
    )
