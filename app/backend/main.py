"""
FastAPI application for the document extraction service.

Provides endpoints for:
- Uploading documents (inline, converted or by reference)
- Extracting one column's value from one document
- Chatting over the extraction table
- Converting Word documents to PDF
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .exceptions import (
    AIServiceError,
    ConfigurationError,
    ConversionError,
    ReadError,
    ResponseContractError,
    UploadError,
)
from .models import HealthResponse
from .routers import convert, extraction, upload
from .services.ai import get_ai_service

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Document Extraction Service...")
    yield
    logger.info("Shutting down Document Extraction Service...")
    await get_ai_service().close()


# Create FastAPI application
app = FastAPI(
    title="Document Extraction API",
    description="Column-based data extraction from documents using AI",
    version="1.0.0",
    lifespan=lifespan,
)

# Browser clients call the conversion endpoint from any origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Client-Info", "Apikey"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(status="healthy", message="Document Extraction API is running")


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="Service is healthy")


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(upload.router)
app.include_router(extraction.router)
app.include_router(convert.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Handle missing credentials or service URLs."""
    logger.error("Configuration error: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


@app.exception_handler(ReadError)
async def read_error_handler(request: Request, exc: ReadError):
    """Handle unreadable uploads."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    """Handle failures of the resumable upload handshake."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc), "upstream_status": exc.status_code},
    )


@app.exception_handler(ConversionError)
async def conversion_error_handler(request: Request, exc: ConversionError):
    """Handle Word to PDF conversion failures during ingestion."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
    )


@app.exception_handler(ResponseContractError)
async def response_contract_error_handler(request: Request, exc: ResponseContractError):
    """Handle model replies that do not follow the JSON contract."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc)},
    )


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request: Request, exc: AIServiceError):
    """Handle AI service errors."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )
