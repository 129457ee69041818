"""
Base64 encoding of uploaded files.
"""

import base64
import logging
from dataclasses import dataclass
from typing import BinaryIO

from ...exceptions import ReadError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class EncodedFile:
    """Base64 payload of a file with its MIME type and display name."""

    data: str
    mime_type: str
    display_name: str


def read_bytes(file_bytes: bytes | BinaryIO) -> bytes:
    """
    Read raw bytes from bytes or a file-like object.

    Raises:
        ReadError: If the underlying read fails.
    """
    if not hasattr(file_bytes, "read"):
        return bytes(file_bytes)
    try:
        return file_bytes.read()
    except (OSError, ValueError) as e:
        logger.error("Failed to read file: %s", e)
        raise ReadError(f"Failed to read file: {e}") from e


def encode_file(
    file_bytes: bytes | BinaryIO,
    mime_type: str | None,
    file_name: str,
    display_name: str | None = None,
) -> EncodedFile:
    """
    Encode a file for inline transport.

    Args:
        file_bytes: File content as bytes or file-like object.
        mime_type: Declared MIME type; empty or missing means unknown.
        file_name: Original file name.
        display_name: Name to show; defaults to the file name.

    Returns:
        EncodedFile with the base64 content.

    Raises:
        ReadError: If the file cannot be read.
    """
    raw = read_bytes(file_bytes)
    return EncodedFile(
        data=base64.b64encode(raw).decode("ascii"),
        mime_type=mime_type or DEFAULT_MIME_TYPE,
        display_name=display_name or file_name,
    )
