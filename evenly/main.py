"""
FastAPI entrypoint for Evenly backend application.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from evenly.core.config import settings
from evenly.core.exceptions import IntegrityError, LedgerError, NotFoundError, ValidationError
from evenly.core.utils import format_error
from evenly.api.router import api_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Evenly API",
    description="Backend API for shared expense splitting",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error(exc.error, exc.message, field=exc.field)
    )


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=exc.status_code, content=format_error(exc.error, exc.message))


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.error(f"Ledger integrity violation on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=format_error(exc.error, exc.message))


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.error(f"Ledger error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=format_error(exc.error, exc.message))


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Evenly API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
