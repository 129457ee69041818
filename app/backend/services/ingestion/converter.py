"""
Word document detection and conversion to PDF via the conversion endpoint.
"""

import logging
import re

import httpx

from ...exceptions import ConfigurationError, ConversionError
from ...models import ConversionOutcome
from .encoder import EncodedFile

logger = logging.getLogger(__name__)

WORD_MIME_MARKERS = ("wordprocessingml", "msword")
WORD_EXTENSIONS = (".doc", ".docx")
PDF_MIME_TYPE = "application/pdf"

_WORD_SUFFIX = re.compile(r"\.docx?$", re.IGNORECASE)


def is_word_document(mime_type: str | None, file_name: str | None) -> bool:
    """True for Word MIME types or .doc/.docx file names."""
    mime = (mime_type or "").lower()
    name = (file_name or "").lower()
    return any(m in mime for m in WORD_MIME_MARKERS) or name.endswith(WORD_EXTENSIONS)


def pdf_file_name(file_name: str) -> str:
    """Replace a trailing .doc/.docx extension with .pdf."""
    return _WORD_SUFFIX.sub(".pdf", file_name)


class DocumentConverter:
    """
    Client of the /convert-document endpoint.

    Non-Word files are passed through without a network call.
    """

    def __init__(
        self,
        base_url: str | None,
        api_key: str | None = None,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.timeout = timeout
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    async def convert(self, encoded: EncodedFile) -> ConversionOutcome:
        """
        Convert a Word document to PDF.

        Returns:
            ConversionOutcome; `converted` is False and the payload unchanged
            for anything that is not a Word document.

        Raises:
            ConfigurationError: If the conversion service URL is not set.
            ConversionError: If the service rejects or fails the conversion.
        """
        if not is_word_document(encoded.mime_type, encoded.display_name):
            return ConversionOutcome(
                pdf_data=encoded.data,
                converted=False,
                file_name=encoded.display_name,
            )

        if not self.base_url:
            raise ConfigurationError(
                "Conversion service URL not configured. Set CONVERSION_SERVICE_URL."
            )

        logger.info("Converting '%s' to PDF", encoded.display_name)
        payload = {
            "fileData": encoded.data,
            "fileName": encoded.display_name,
            "mimeType": encoded.mime_type,
        }

        client = self._http_client or httpx.AsyncClient(timeout=self.timeout)
        try:
            response = await client.post(
                f"{self.base_url}/convert-document",
                json=payload,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error("Conversion request failed: %s", e)
            raise ConversionError(f"Conversion request failed: {e}") from e
        finally:
            if self._http_client is None:
                await client.aclose()

        if response.status_code != 200:
            try:
                body = response.json()
                detail = body.get("message") or body.get("details") or body.get("error")
            except (AttributeError, ValueError):
                detail = response.text
            logger.error(
                "Conversion service returned %d for '%s': %s",
                response.status_code,
                encoded.display_name,
                detail,
            )
            raise ConversionError(
                f"Document conversion failed: {detail}",
                details=str(detail),
                status_code=response.status_code,
            )

        try:
            data = response.json()
            pdf_data = data["pdfData"]
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Unexpected conversion service reply for '%s'", encoded.display_name)
            raise ConversionError(
                "Unexpected response from conversion service",
                details=response.text,
            ) from e
        if not isinstance(pdf_data, str) or not pdf_data:
            raise ConversionError(
                "Unexpected response from conversion service",
                details=response.text,
            )

        converted = bool(data.get("converted"))
        return ConversionOutcome(
            pdf_data=pdf_data,
            converted=converted,
            file_name=data.get("newFileName")
            or (pdf_file_name(encoded.display_name) if converted else encoded.display_name),
        )
