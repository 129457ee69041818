"""
Router for document upload.

Handles:
- Turning an uploaded file into a Document using the configured ingestion strategy
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ..exceptions import ReadError
from ..models import Document
from ..services.ingestion import DocumentIngestor, get_document_ingestor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["upload"])


@router.post("/documents", response_model=Document)
async def upload_document(
    file: Annotated[UploadFile, File(description="PDF, image, Word or text file")],
    ingestor: DocumentIngestor = Depends(get_document_ingestor),
) -> Document:
    """
    Upload a document for extraction.

    Returns the Document (inline base64 content or a remote file reference)
    that is then passed to /extract.
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No filename provided",
        )

    try:
        file_bytes = await file.read()
    except (OSError, ValueError) as e:
        logger.error("Failed to read upload '%s': %s", file.filename, e)
        raise ReadError(f"Failed to read file {file.filename}: {e}") from e
    finally:
        await file.close()

    if not file_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file provided",
        )

    logger.info("Processing upload: %s (%d bytes)", file.filename, len(file_bytes))
    return await ingestor.ingest(file_bytes, file.filename, file.content_type)
