from fastapi import APIRouter, Depends, HTTPException

from lk_documents.dependencies import get_document_service
from lk_documents.errors import (
    AdmissionRejectedError,
    DocumentValidationError,
    ReferentialIntegrityError,
    TransientPersistenceError,
    PermanentPersistenceError,
)
from lk_documents.schemas.document import DocumentCreate, DocumentDto
from lk_documents.services.document_service import DocumentService

router = APIRouter(prefix="/lk/documents", tags=["documents"])


@router.post("/create", response_model=DocumentDto)
async def create_document(
    req: DocumentCreate,
    service: DocumentService = Depends(get_document_service),
):
    try:
        return await service.create_document(req)
    except DocumentValidationError as exc:
        # DocumentCreate rejects these first; reached only by plain DocumentDto callers.
        raise HTTPException(status_code=400, detail=str(exc))
    except ReferentialIntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"message": str(exc), "kind": exc.kind, "ids": exc.ids},
        )
    except AdmissionRejectedError as exc:
        raise HTTPException(
            status_code=429,
            detail=str(exc),
            headers={"Retry-After": str(exc.retry_after)},
        )
    except TransientPersistenceError as exc:
        raise HTTPException(status_code=503, detail=f"Temporary storage failure: {exc}")
    except PermanentPersistenceError as exc:
        raise HTTPException(status_code=500, detail=f"Storage failure: {exc}")
