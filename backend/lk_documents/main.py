import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lk_documents.config import settings
from lk_documents.database import init_db
from lk_documents.dependencies import get_limiter
from lk_documents.logging_config import setup_logging
from lk_documents.routers import documents

logger = logging.getLogger("lk_documents")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_format)
    init_db(settings.db_path)
    # Build the limiter now so warm-up is measured from startup.
    limiter = get_limiter()
    logger.info("Admission limiter ready: %r", limiter)
    yield


app = FastAPI(
    title="LK Documents",
    description="Rate-limited intake of goods introduction documents",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


app.include_router(documents.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}
