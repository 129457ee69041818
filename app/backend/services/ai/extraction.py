"""
Per-column data extraction from a single document.

Builds a prompt for one column, attaches the document as an image, PDF file or
inline text block, calls the OpenAI chat completions API under the retry
policy, and normalizes the JSON reply into an ExtractionCell.
"""

import base64
import binascii
import json
import logging
import re
from enum import Enum
from typing import Any

from ...exceptions import (
    AIServiceError,
    EmptyResponseError,
    ExtractionFailure,
    IncompleteResponseError,
    MalformedJsonError,
    ModelCallError,
    NoJsonFoundError,
)
from ...models import Column, ColumnType, Confidence, Document, ExtractionCell, ReviewStatus
from .retry import RetryPolicy, is_rate_limit_error, with_retry

logger = logging.getLogger(__name__)


# =============================================================================
# Prompts
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = (
    "You are a precise data extraction agent. You must extract data exactly as "
    "requested and respond only with valid JSON."
)

FORMAT_INSTRUCTIONS: dict[ColumnType, str] = {
    ColumnType.DATE: "Format the date as YYYY-MM-DD.",
    ColumnType.BOOLEAN: "Return 'true' or 'false' as the value string.",
    ColumnType.NUMBER: "Return a clean number string, removing currency symbols if needed.",
    ColumnType.LIST: "Return the items as a comma-separated string.",
}

DEFAULT_FORMAT_INSTRUCTION = "Keep the text concise."

# Greedy: spans from the first "{" to the last "}" of the reply
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

REQUIRED_RESPONSE_FIELDS = ("value", "confidence")


class ResponseFieldPolicy(str, Enum):
    """What to do when the model omits required reply fields."""

    DEFAULT = "default"  # fill in defaults
    RETRY = "retry"  # treat as malformed and ask again


def format_instruction(column_type: ColumnType | str) -> str:
    """Return the format instruction for a declared column type."""
    try:
        column_type = ColumnType(column_type)
    except ValueError:
        return DEFAULT_FORMAT_INSTRUCTION
    return FORMAT_INSTRUCTIONS.get(column_type, DEFAULT_FORMAT_INSTRUCTION)


def build_extraction_prompt(column: Column) -> str:
    """Build the extraction prompt for one column."""
    return f"""Task: Extract specific information from the provided document.

Column Name: "{column.name}"
Extraction Instruction: {column.prompt}

Format Requirements:
- {format_instruction(column.type)}
- Provide a confidence score (High/Medium/Low).
- Include the exact quote from the text where the answer is found.
- Provide a brief reasoning.

You MUST respond with valid JSON in exactly this format:
{{
  "value": "the extracted answer",
  "confidence": "High/Medium/Low",
  "quote": "exact text from document",
  "page": 1,
  "reasoning": "brief explanation"
}}"""


# =============================================================================
# Message Construction
# =============================================================================


def is_visual_document(mime_type: str) -> bool:
    """Images and PDFs are attached as binary blocks rather than inlined as text."""
    return mime_type.startswith("image/") or mime_type == "application/pdf"


def decode_document_text(content: str) -> str:
    """
    Decode a base64 payload into text.

    UTF-8 is tried first; bytes that are not valid UTF-8 are decoded as
    Latin-1 so every byte maps to a character.
    """
    try:
        raw = base64.b64decode(content)
    except (binascii.Error, ValueError) as e:
        raise AIServiceError(f"Document content is not valid base64: {e}") from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def _attachment_block(document: Document) -> dict[str, Any]:
    # file_uri holds the id returned by the OpenAI file store
    if document.is_reference:
        return {"type": "file", "file": {"file_id": document.file_uri}}

    if document.mime_type.startswith("image/"):
        url = f"data:{document.mime_type};base64,{document.content}"
        return {"type": "image_url", "image_url": {"url": url, "detail": "high"}}

    return {
        "type": "file",
        "file": {
            "filename": document.name,
            "file_data": f"data:{document.mime_type};base64,{document.content}",
        },
    }


def build_user_content(document: Document, prompt: str) -> str | list[dict[str, Any]]:
    """
    Build the user message content for an extraction request.

    Images and PDFs (and any referenced upload) become an attachment block
    followed by the prompt. Everything else is inlined as text ahead of the
    prompt, preferring locally extracted text when available.
    """
    if is_visual_document(document.mime_type) or document.is_reference:
        return [_attachment_block(document), {"type": "text", "text": prompt}]

    if document.extracted_text:
        doc_text = document.extracted_text
    else:
        doc_text = decode_document_text(document.content or "")

    return f"DOCUMENT CONTENT:\n{doc_text}\n\n{prompt}"


# =============================================================================
# Response Contract
# =============================================================================


def parse_json_response(text: str | None) -> dict[str, Any]:
    """
    Recover the JSON object from a model reply.

    Surrounding prose or code fences are ignored: the span from the first "{"
    to the last "}" is parsed.

    Raises:
        EmptyResponseError: The reply has no text.
        NoJsonFoundError: No "{...}" span exists in the reply.
        MalformedJsonError: The span is not a valid JSON object.
    """
    if not text:
        raise EmptyResponseError("Empty response from model")

    match = JSON_OBJECT_PATTERN.search(text)
    if not match:
        raise NoJsonFoundError("No JSON found in response")

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error("Failed to parse extraction response: %s", text[:500])
        raise MalformedJsonError(f"Invalid JSON in extraction response: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedJsonError("Extraction response JSON is not an object")
    return payload


def _normalize_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _normalize_confidence(value: Any) -> Confidence:
    if isinstance(value, str):
        for level in Confidence:
            if value.strip().lower() == level.value.lower():
                return level
    return Confidence.LOW


def _normalize_page(value: Any) -> int:
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def _normalize_text(value: Any) -> str:
    return value if isinstance(value, str) else ("" if value is None else str(value))


def normalize_cell(
    payload: dict[str, Any],
    policy: ResponseFieldPolicy = ResponseFieldPolicy.DEFAULT,
) -> ExtractionCell:
    """
    Convert a parsed reply into an ExtractionCell.

    Missing fields are defaulted; with the RETRY policy a reply without
    `value` or `confidence` raises IncompleteResponseError instead.
    """
    if policy == ResponseFieldPolicy.RETRY:
        missing = [f for f in REQUIRED_RESPONSE_FIELDS if payload.get(f) is None]
        if missing:
            raise IncompleteResponseError(f"Response missing required fields: {missing}")

    return ExtractionCell(
        value=_normalize_value(payload.get("value")),
        confidence=_normalize_confidence(payload.get("confidence")),
        quote=_normalize_text(payload.get("quote")),
        page=_normalize_page(payload.get("page")),
        reasoning=_normalize_text(payload.get("reasoning")),
        status=ReviewStatus.NEEDS_REVIEW,
    )


def first_text_segment(response: Any) -> str:
    """Return the text of the first choice of a chat completion, or ""."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    return choices[0].message.content or ""


def to_model_call_error(error: Exception) -> ModelCallError:
    """Wrap a transport/API error with its structured status and rate-limit flag."""
    status = getattr(error, "status_code", None)
    return ModelCallError(
        f"Model API call failed: {error}",
        status_code=status if isinstance(status, int) else None,
        rate_limited=is_rate_limit_error(error),
    )


# =============================================================================
# Main Extraction Function
# =============================================================================


async def extract_column_data(
    document: Document,
    column: Column,
    client: Any,  # AsyncOpenAI client
    model: str = "gpt-4.1",
    max_tokens: int = 2048,
    retry_policy: RetryPolicy | None = None,
    json_mode: bool = True,
    field_policy: ResponseFieldPolicy = ResponseFieldPolicy.DEFAULT,
    sleep: Any = None,
) -> ExtractionCell:
    """
    Extract one column's value from one document.

    Args:
        document: The document to read.
        column: The column definition (name, type, instruction).
        client: AsyncOpenAI client instance.
        model: Model name to use.
        max_tokens: Output token ceiling for the reply.
        retry_policy: Retry ceiling and base delay; defaults to 5 retries from 1s.
        json_mode: Ask the provider for a JSON object response.
        field_policy: Whether missing reply fields are defaulted or retried.
        sleep: Optional awaitable sleep override for the retry wrapper.

    Returns:
        ExtractionCell with status "needs_review".

    Raises:
        AIServiceError: Model call or response contract failures, after retries.
    """
    policy = retry_policy or RetryPolicy()
    prompt = build_extraction_prompt(column)
    content = build_user_content(document, prompt)

    logger.info(
        "Extracting column '%s' (%s) from '%s' [%s]",
        column.name,
        column.type.value,
        document.name,
        document.mime_type,
    )

    request: dict[str, Any] = {
        "model": model,
        "max_completion_tokens": max_tokens,
        "messages": [
            {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ],
    }
    if json_mode:
        request["response_format"] = {"type": "json_object"}

    async def attempt() -> ExtractionCell:
        try:
            response = await client.chat.completions.create(**request)
        except AIServiceError:
            raise
        except Exception as e:
            raise to_model_call_error(e) from e

        payload = parse_json_response(first_text_segment(response))
        return normalize_cell(payload, field_policy)

    def should_retry(error: BaseException) -> bool:
        if field_policy == ResponseFieldPolicy.RETRY and isinstance(error, IncompleteResponseError):
            return True
        return is_rate_limit_error(error)

    retry_kwargs: dict[str, Any] = {
        "retries": policy.retries,
        "initial_delay": policy.initial_delay,
        "should_retry": should_retry,
    }
    if sleep is not None:
        retry_kwargs["sleep"] = sleep

    try:
        cell = await with_retry(attempt, **retry_kwargs)
    except AIServiceError as e:
        logger.error("Extraction error for '%s' / '%s': %s", document.name, column.name, e)
        raise
    except Exception as e:
        logger.exception("Data extraction failed")
        raise ExtractionFailure(f"Data extraction failed: {e}") from e

    logger.info(
        "Extracted '%s' from '%s': confidence=%s page=%d",
        column.name,
        document.name,
        cell.confidence.value,
        cell.page,
    )
    return cell
