"""
Best-effort local text extraction from Word documents using python-docx.
"""

import io
import logging

from docx import Document as DocxDocument

logger = logging.getLogger(__name__)


def extract_docx_text(file_bytes: bytes, file_name: str = "unknown.docx") -> str | None:
    """
    Extract plain text from a .docx file.

    Paragraphs come first, then table rows with cells joined by " | ".
    Failures (including legacy binary .doc files, which python-docx cannot
    open) are logged and yield None; they never propagate.
    """
    try:
        doc = DocxDocument(io.BytesIO(file_bytes))

        parts = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    parts.append(" | ".join(cells))

        text = "\n".join(parts)
        logger.info("Extracted %d characters of text from '%s'", len(text), file_name)
        return text or None

    except Exception as e:
        logger.warning("Local text extraction failed for '%s': %s", file_name, e)
        return None
