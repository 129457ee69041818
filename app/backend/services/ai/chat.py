"""
Chat over the extraction table.

The whole table is rendered as CSV into the system prompt, so the model can
only answer from what has been extracted. Failures never reach the caller.
"""

import logging
from typing import Any, Sequence

from ...models import ChatTurn, Column, Document, ExtractionResult
from .extraction import first_text_segment
from .retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

NO_RESPONSE_MESSAGE = "No response generated."
CHAT_ERROR_MESSAGE = (
    "I apologize, but I encountered an error while analyzing the data. Please try again."
)
MISSING_CELL = "N/A"


def render_data_table(
    documents: Sequence[Document],
    columns: Sequence[Column],
    results: ExtractionResult,
) -> str:
    """
    Render the extraction table as a deterministic CSV-like text block.

    One row per document in the given order. Commas inside values are
    replaced by spaces; absent cells are rendered as "N/A".
    """
    lines = [
        "CURRENT EXTRACTION DATA:",
        f"Documents: {', '.join(d.name for d in documents)}",
        f"Columns: {', '.join(c.name for c in columns)}",
        "",
        "DATA TABLE (CSV Format):",
        ",".join(["Document Name", *(c.name for c in columns)]),
    ]

    for doc in documents:
        row = [doc.name]
        doc_cells = results.get(doc.id, {})
        for col in columns:
            cell = doc_cells.get(col.id)
            row.append(cell.value.replace(",", " ") if cell is not None else MISSING_CELL)
        lines.append(",".join(row))

    return "\n".join(lines) + "\n"


def build_chat_system_prompt(data_context: str) -> str:
    """Wrap the rendered table in the analyst instructions."""
    return f"""You are an intelligent data analyst assistant.
You have access to a dataset extracted from documents (provided in context).

{data_context}

Instructions:
1. Answer the user's question based strictly on the provided data table.
2. If comparing documents, mention them by name.
3. If the data is missing or N/A, state that clearly.
4. Keep answers professional and concise."""


async def analyze_data_with_chat(
    message: str,
    documents: Sequence[Document],
    columns: Sequence[Column],
    results: ExtractionResult,
    history: Sequence[ChatTurn],
    client: Any,  # AsyncOpenAI client
    model: str = "gpt-4.1",
    max_tokens: int = 2048,
    retry_policy: RetryPolicy | None = None,
    sleep: Any = None,
) -> str:
    """
    Answer a free-form question about the extraction table.

    Returns:
        The model's answer, "No response generated." for an empty reply, or a
        fixed apology if anything fails.
    """
    try:
        system_prompt = build_chat_system_prompt(
            render_data_table(documents, columns, results)
        )
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": turn.role, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": message})

        policy = retry_policy or RetryPolicy()
        retry_kwargs: dict[str, Any] = {
            "retries": policy.retries,
            "initial_delay": policy.initial_delay,
        }
        if sleep is not None:
            retry_kwargs["sleep"] = sleep

        response = await with_retry(
            lambda: client.chat.completions.create(
                model=model,
                max_completion_tokens=max_tokens,
                messages=messages,
            ),
            **retry_kwargs,
        )
        return first_text_segment(response) or NO_RESPONSE_MESSAGE

    except Exception:
        logger.exception("Chat analysis error")
        return CHAT_ERROR_MESSAGE
