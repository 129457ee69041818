"""
Router for extraction and analysis endpoints.

Handles:
- Single cell extraction (one document, one column)
- Chat over the extraction table
- Prompt suggestions for new columns
"""

import logging

from fastapi import APIRouter, Depends

from ..models import (
    ChatRequest,
    ChatResponse,
    ExtractionCell,
    ExtractRequest,
    PromptHelperRequest,
    PromptHelperResponse,
)
from ..services.ai import AIService, get_ai_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["extraction"])


@router.post("/extract", response_model=ExtractionCell)
async def extract_cell(
    request: ExtractRequest,
    ai_service: AIService = Depends(get_ai_service),
) -> ExtractionCell:
    """
    Extract one column's value from one document.

    Errors propagate to the application exception handlers; no placeholder
    cell is returned on failure.
    """
    return await ai_service.extract(request.document, request.column)


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    ai_service: AIService = Depends(get_ai_service),
) -> ChatResponse:
    """Answer a question about the extraction table. Always returns 200."""
    reply = await ai_service.chat(
        request.message,
        request.documents,
        request.columns,
        request.results,
        request.history,
    )
    return ChatResponse(reply=reply)


@router.post("/columns/prompt-helper", response_model=PromptHelperResponse)
async def prompt_helper(
    request: PromptHelperRequest,
    ai_service: AIService = Depends(get_ai_service),
) -> PromptHelperResponse:
    """Suggest an extraction instruction for a column."""
    prompt = await ai_service.suggest_prompt(
        request.name,
        request.type,
        request.current_prompt,
    )
    return PromptHelperResponse(prompt=prompt)
