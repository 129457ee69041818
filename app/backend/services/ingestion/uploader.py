"""
Resumable upload of files to the OpenAI files store.

An upload session is opened with the total byte length, MIME type and file
name; the bytes are then sent as one or more parts and the session is
completed, which yields the stored file id that chat completions accept in a
`file` content block.
"""

import logging
from dataclasses import dataclass
from typing import Any

import openai

from ...exceptions import ConfigurationError, UploadError

logger = logging.getLogger(__name__)

# Largest part the Uploads API accepts
DEFAULT_PART_SIZE = 64 * 1024 * 1024
UPLOAD_PURPOSE = "user_data"


@dataclass(frozen=True)
class UploadedFile:
    """Reference to a stored file, usable in place of inline content."""

    uri: str
    mime_type: str
    display_name: str


class FileUploader:
    """Client for the create / add parts / complete upload handshake."""

    def __init__(
        self,
        api_key: str | None = None,
        part_size: int = DEFAULT_PART_SIZE,
        client: Any = None,
    ):
        self.api_key = api_key
        self.part_size = part_size
        self._client = client

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(
                    "Upload API key not configured. Set UPLOAD_API_KEY or OPENAI_API_KEY."
                )
            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def upload(
        self,
        file_bytes: bytes,
        mime_type: str | None,
        display_name: str,
    ) -> UploadedFile:
        """
        Upload a file and return its stored reference.

        The returned `uri` is the provider file id (`file-...`).

        Raises:
            ConfigurationError: If no upload API key is configured.
            UploadError: If any step of the handshake fails.
        """
        client = self.client
        mime_type = mime_type or "application/octet-stream"
        num_bytes = len(file_bytes)

        try:
            session = await client.uploads.create(
                bytes=num_bytes,
                filename=display_name,
                mime_type=mime_type,
                purpose=UPLOAD_PURPOSE,
            )
            part_ids = []
            for offset in range(0, num_bytes, self.part_size):
                part = await client.uploads.parts.create(
                    upload_id=session.id,
                    data=file_bytes[offset:offset + self.part_size],
                )
                part_ids.append(part.id)
            completed = await client.uploads.complete(upload_id=session.id, part_ids=part_ids)
        except openai.APIStatusError as e:
            logger.error("File upload of '%s' failed: %s", display_name, e)
            raise UploadError(
                f"Failed to upload {display_name}: {e.status_code} {e.message}",
                status_code=e.status_code,
                body=e.response.text,
            ) from e
        except openai.APIError as e:
            logger.error("File upload of '%s' failed: %s", display_name, e)
            raise UploadError(f"Failed to upload {display_name}: {e}") from e

        stored = getattr(completed, "file", None)
        file_id = getattr(stored, "id", None)
        if not file_id:
            raise UploadError(
                f"Failed to upload {display_name}: completed upload has no file id",
                body=str(completed)[:500],
            )

        logger.info(
            "Uploaded '%s' (%d bytes, %d parts) as %s",
            display_name,
            num_bytes,
            len(part_ids),
            file_id,
        )
        return UploadedFile(
            uri=file_id,
            mime_type=mime_type,
            display_name=getattr(stored, "filename", None) or display_name,
        )
