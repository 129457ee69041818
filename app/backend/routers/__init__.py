"""
Routers package for FastAPI endpoints.

Organized by domain:
- convert: Word to PDF conversion
- extraction: Cell extraction, chat and prompt suggestions
- upload: Document ingestion
"""

from . import convert, extraction, upload

__all__ = ["convert", "extraction", "upload"]
