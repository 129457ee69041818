"""
AI service package for column extraction and table analysis.

This package provides modular AI functionality split into:
- extraction: Per-column data extraction with a JSON response contract
- chat: Question answering over the extraction table
- prompt_helper: Drafting of column extraction instructions
- retry: Exponential backoff for rate-limited model calls

The AIService class binds these functions to one configured OpenAI client.
"""

import logging
from typing import Any, Sequence

from ...exceptions import AIServiceError, ConfigurationError
from ...models import ChatTurn, Column, ColumnType, Document, ExtractionCell, ExtractionResult
from .chat import CHAT_ERROR_MESSAGE, analyze_data_with_chat, render_data_table
from .extraction import (
    ResponseFieldPolicy,
    build_extraction_prompt,
    extract_column_data,
    format_instruction,
    normalize_cell,
    parse_json_response,
)
from .prompt_helper import fallback_prompt, generate_prompt_helper
from .retry import RetryPolicy, is_rate_limit_error, with_retry

logger = logging.getLogger(__name__)

__all__ = [
    "AIService",
    "AIServiceError",
    "ResponseFieldPolicy",
    "RetryPolicy",
    "analyze_data_with_chat",
    "build_extraction_prompt",
    "extract_column_data",
    "format_instruction",
    "generate_prompt_helper",
    "get_ai_service",
    "is_rate_limit_error",
    "normalize_cell",
    "parse_json_response",
    "render_data_table",
    "with_retry",
]


class AIService:
    """
    Service for AI-powered column extraction and table analysis.

    Uses OpenAI chat completions with vision and file inputs for:
    - Extracting one column's value from one document
    - Answering questions about the extracted table
    - Suggesting extraction instructions for new columns

    Configuration is passed at construction; the OpenAI client is created on
    first use so a missing key surfaces as ConfigurationError only when a
    model call is actually attempted. A prebuilt client can be injected for
    tests.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4.1",
        max_tokens: int = 2048,
        retry_policy: RetryPolicy | None = None,
        json_mode: bool = True,
        field_policy: ResponseFieldPolicy = ResponseFieldPolicy.DEFAULT,
        client: Any = None,
    ):
        """
        Initialize the AI service.

        Args:
            api_key: OpenAI API key.
            model: OpenAI model to use (must accept image and file inputs).
            max_tokens: Output token ceiling for extraction and chat replies.
            retry_policy: Retry ceiling and base delay for rate-limited calls.
            json_mode: Request JSON object responses for extraction.
            field_policy: Handling of replies that omit required fields.
            client: Optional prebuilt AsyncOpenAI-compatible client.
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.retry_policy = retry_policy or RetryPolicy()
        self.json_mode = json_mode
        self.field_policy = field_policy
        self._client = client

    @classmethod
    def from_settings(cls, settings: Any) -> "AIService":
        """Build the service from application settings."""
        try:
            field_policy = ResponseFieldPolicy(settings.response_field_policy.lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown response_field_policy: {settings.response_field_policy}"
            ) from e

        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            max_tokens=settings.max_output_tokens,
            retry_policy=RetryPolicy(
                retries=settings.retry_max_attempts,
                initial_delay=settings.retry_initial_delay,
            ),
            json_mode=settings.json_response_mode,
            field_policy=field_policy,
        )

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def extract(self, document: Document, column: Column) -> ExtractionCell:
        """
        Extract one column's value from one document.

        Delegates to the extraction module.
        """
        return await extract_column_data(
            document,
            column,
            client=self.client,
            model=self.model,
            max_tokens=self.max_tokens,
            retry_policy=self.retry_policy,
            json_mode=self.json_mode,
            field_policy=self.field_policy,
        )

    async def chat(
        self,
        message: str,
        documents: Sequence[Document],
        columns: Sequence[Column],
        results: ExtractionResult,
        history: Sequence[ChatTurn] = (),
    ) -> str:
        """
        Answer a question about the extraction table.

        Never raises: configuration and model failures become the fixed
        apology message.
        """
        try:
            client = self.client
        except ConfigurationError:
            logger.exception("Chat analysis error")
            return CHAT_ERROR_MESSAGE

        return await analyze_data_with_chat(
            message,
            documents,
            columns,
            results,
            history,
            client=client,
            model=self.model,
            max_tokens=self.max_tokens,
            retry_policy=self.retry_policy,
        )

    async def suggest_prompt(
        self,
        name: str,
        column_type: ColumnType | str,
        current_prompt: str | None = None,
    ) -> str:
        """Suggest an extraction instruction for a column."""
        try:
            client = self.client
        except ConfigurationError:
            logger.warning("Prompt helper unavailable: OpenAI API key not configured")
            return fallback_prompt(name, current_prompt)

        return await generate_prompt_helper(
            name,
            column_type,
            current_prompt,
            client=client,
            model=self.model,
        )

    async def close(self) -> None:
        """Release the underlying HTTP connections."""
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None


# =============================================================================
# Singleton Factory
# =============================================================================

_ai_service: AIService | None = None


def get_ai_service() -> AIService:
    """Get or create the AI service singleton."""
    global _ai_service
    if _ai_service is None:
        from ...config import get_settings

        _ai_service = AIService.from_settings(get_settings())
    return _ai_service
