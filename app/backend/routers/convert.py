"""
Router for the Word to PDF conversion endpoint.

Handles:
- Pass-through of non-Word files
- Conversion of Word files through the conversion provider
- CORS preflight for browser clients
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from ..exceptions import ConfigurationError, ConversionError
from ..models import ConvertDocumentRequest, ConvertDocumentResponse
from ..services.cloudconvert import CloudConvertClient, get_cloudconvert_client
from ..services.ingestion import is_word_document, pdf_file_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["conversion"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}


def _json(content: dict, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


@router.options("/convert-document")
async def convert_document_preflight() -> Response:
    """Answer CORS preflight requests."""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/convert-document", response_model=ConvertDocumentResponse)
async def convert_document(
    request: ConvertDocumentRequest,
    converter: CloudConvertClient = Depends(get_cloudconvert_client),
) -> JSONResponse:
    """
    Convert a base64 Word document to PDF.

    Non-Word files are returned unchanged with `converted: false`.
    """
    if not request.file_data or not request.file_name:
        return _json(
            {"error": "Missing required fields: fileData and fileName"},
            status.HTTP_400_BAD_REQUEST,
        )

    if not is_word_document(request.mime_type, request.file_name):
        body = ConvertDocumentResponse(
            pdf_data=request.file_data,
            converted=False,
            message="File is not a Word document, no conversion needed",
        )
        return _json(body.model_dump(by_alias=True, exclude_none=True))

    try:
        pdf_data = await converter.convert_to_pdf(request.file_data, request.file_name)
    except ConfigurationError as e:
        return _json(
            {
                "error": str(e),
                "instructions": "Get a free API key at https://cloudconvert.com/register",
            },
            status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    except ConversionError as e:
        logger.error("Document conversion error for '%s': %s", request.file_name, e)
        content = {"error": "Document conversion failed", "message": str(e)}
        if e.details:
            content["details"] = e.details
        return _json(content, e.status_code)

    body = ConvertDocumentResponse(
        pdf_data=pdf_data,
        converted=True,
        original_file_name=request.file_name,
        new_file_name=pdf_file_name(request.file_name),
    )
    return _json(body.model_dump(by_alias=True, exclude_none=True))
