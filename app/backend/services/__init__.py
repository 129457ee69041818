"""
Services package for the document extraction application.

Contains:
- ai: OpenAI integration for extraction, chat and prompt suggestions
- ingestion: Encoding, conversion, text extraction and upload of documents
- cloudconvert: Conversion provider client behind /convert-document
"""

from .ai import AIService
from .cloudconvert import CloudConvertClient
from .ingestion import DocumentIngestor

__all__ = ["AIService", "CloudConvertClient", "DocumentIngestor"]
