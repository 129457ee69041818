"""
Document ingestion: turning an uploaded file into a Document.

One ingestor, three strategies selected by configuration:
- inline: base64 content embedded in the request to the model
- convert: Word files converted to PDF first, then embedded inline
- reference: PDFs uploaded to the model provider's file store and referenced
  by file id; other files are embedded inline

Word documents can additionally carry locally extracted text.
"""

import logging
from enum import Enum
from typing import BinaryIO

from ...exceptions import ConfigurationError
from ...models import Document
from .converter import PDF_MIME_TYPE, DocumentConverter, is_word_document, pdf_file_name
from .encoder import DEFAULT_MIME_TYPE, EncodedFile, encode_file, read_bytes
from .text_extractor import extract_docx_text
from .uploader import FileUploader, UploadedFile

logger = logging.getLogger(__name__)

# Chat completions accept stored files only for PDFs
REFERENCE_MIME_TYPES = frozenset({PDF_MIME_TYPE})

__all__ = [
    "DocumentConverter",
    "DocumentIngestor",
    "EncodedFile",
    "FileUploader",
    "IngestionStrategy",
    "UploadedFile",
    "encode_file",
    "extract_docx_text",
    "get_document_ingestor",
    "is_word_document",
    "pdf_file_name",
]


class IngestionStrategy(str, Enum):
    """How document payloads reach the model."""

    INLINE = "inline"
    CONVERT = "convert"
    REFERENCE = "reference"


class DocumentIngestor:
    """Builds Documents from uploaded files using one configured strategy."""

    def __init__(
        self,
        strategy: IngestionStrategy = IngestionStrategy.INLINE,
        converter: DocumentConverter | None = None,
        uploader: FileUploader | None = None,
        extract_text: bool = True,
    ):
        self.strategy = strategy
        self.converter = converter
        self.uploader = uploader
        self.extract_text = extract_text

    async def ingest(
        self,
        file_bytes: bytes | BinaryIO,
        file_name: str,
        mime_type: str | None = None,
    ) -> Document:
        """
        Ingest a file according to the configured strategy.

        Raises:
            ReadError: If the file cannot be read.
            ConfigurationError: If the strategy needs a client that is missing.
            ConversionError: If a Word to PDF conversion fails.
            UploadError: If the upload handshake fails.
        """
        raw = read_bytes(file_bytes)
        mime_type = mime_type or DEFAULT_MIME_TYPE
        logger.info(
            "Ingesting '%s' (%d bytes, %s) with strategy '%s'",
            file_name,
            len(raw),
            mime_type,
            self.strategy.value,
        )

        if self.strategy == IngestionStrategy.REFERENCE and mime_type in REFERENCE_MIME_TYPES:
            return await self._ingest_reference(raw, file_name, mime_type)

        encoded = encode_file(raw, mime_type, file_name)
        extracted_text = self._local_text(raw, encoded)

        if self.strategy == IngestionStrategy.CONVERT and is_word_document(mime_type, file_name):
            if self.converter is None:
                raise ConfigurationError("Convert strategy requires a document converter")
            outcome = await self.converter.convert(encoded)
            if outcome.converted:
                return Document(
                    name=outcome.file_name,
                    mime_type=PDF_MIME_TYPE,
                    content=outcome.pdf_data,
                    extracted_text=extracted_text,
                )

        return Document(
            name=encoded.display_name,
            mime_type=encoded.mime_type,
            content=encoded.data,
            extracted_text=extracted_text,
        )

    def _local_text(self, raw: bytes, encoded: EncodedFile) -> str | None:
        if not self.extract_text or not is_word_document(encoded.mime_type, encoded.display_name):
            return None
        return extract_docx_text(raw, encoded.display_name)

    async def _ingest_reference(self, raw: bytes, file_name: str, mime_type: str) -> Document:
        if self.uploader is None:
            raise ConfigurationError("Reference strategy requires a file uploader")
        uploaded = await self.uploader.upload(raw, mime_type, file_name)
        return Document(
            name=uploaded.display_name,
            mime_type=uploaded.mime_type,
            file_uri=uploaded.uri,
        )


_ingestor: DocumentIngestor | None = None


def get_document_ingestor() -> DocumentIngestor:
    """Get or create the document ingestor singleton from settings."""
    global _ingestor
    if _ingestor is None:
        from ...config import get_settings

        settings = get_settings()
        try:
            strategy = IngestionStrategy(settings.ingestion_strategy.lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown ingestion_strategy: {settings.ingestion_strategy}"
            ) from e

        _ingestor = DocumentIngestor(
            strategy=strategy,
            converter=DocumentConverter(
                settings.conversion_service_url,
                api_key=settings.conversion_service_key,
            ),
            uploader=FileUploader(
                settings.upload_api_key or settings.openai_api_key,
                part_size=settings.upload_part_size,
            ),
            extract_text=settings.extract_docx_text,
        )
    return _ingestor
