"""
Drafting of column extraction instructions.

Asks the model to write the instruction a user would otherwise type by hand.
"""

import logging
from typing import Any

from ...models import ColumnType
from .extraction import first_text_segment

logger = logging.getLogger(__name__)


def build_prompt_helper_request(name: str, column_type: str, current_prompt: str | None) -> str:
    draft = f'Draft Prompt: "{current_prompt}"' if current_prompt else ""
    return f"""I need to configure a Large Language Model to extract a specific data field from business documents.

Field Name: "{name}"
Field Type: "{column_type}"
{draft}

Please write a clear, effective prompt that I can send to the LLM to get the best extraction results for this field.
The prompt should describe what to look for and how to handle edge cases if applicable.
Return ONLY the prompt text, no conversational filler."""


def fallback_prompt(name: str, current_prompt: str | None) -> str:
    return current_prompt or f"Extract the {name} from the document."


async def generate_prompt_helper(
    name: str,
    column_type: ColumnType | str,
    current_prompt: str | None,
    client: Any,  # AsyncOpenAI client
    model: str = "gpt-4.1",
    max_tokens: int = 1024,
) -> str:
    """
    Suggest an extraction instruction for a column.

    Falls back to the current draft, or a generic instruction, when the model
    returns nothing or the call fails.
    """
    type_name = column_type.value if isinstance(column_type, ColumnType) else str(column_type)
    try:
        response = await client.chat.completions.create(
            model=model,
            max_completion_tokens=max_tokens,
            messages=[
                {
                    "role": "user",
                    "content": build_prompt_helper_request(name, type_name, current_prompt),
                }
            ],
        )
    except Exception:
        logger.exception("Prompt generation error")
        return fallback_prompt(name, current_prompt)

    text = first_text_segment(response).strip()
    return text or fallback_prompt(name, current_prompt)
