"""
Pydantic models for the document extraction service.

Defines documents, user-defined columns, extraction cells and the request and
response bodies of the HTTP API.
"""

import uuid
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ColumnType(str, Enum):
    """Declared value types for a column."""

    TEXT = "text"  # Also the catch-all for unknown types
    DATE = "date"
    BOOLEAN = "boolean"
    NUMBER = "number"
    LIST = "list"


class Confidence(str, Enum):
    """Coarse, self-reported reliability of an extracted value."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ReviewStatus(str, Enum):
    """Human review state of a cell."""

    NEEDS_REVIEW = "needs_review"
    VERIFIED = "verified"


class Document(BaseModel):
    """
    A file selected for extraction.

    The payload is either inline (`content`, base64) or a reference to a file
    stored by the upload service (`file_uri`). Documents are immutable once
    encoded.

    Attributes:
        id: Unique identifier of the document.
        name: Display name.
        mime_type: MIME type of the payload.
        content: Base64-encoded file content.
        file_uri: Remote reference returned by the upload service.
        extracted_text: Plain text extracted locally from Word documents.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique document identifier",
    )
    name: str = Field(..., min_length=1, description="Display name")
    mime_type: str = Field(
        default="application/octet-stream",
        description="MIME type of the payload",
    )
    content: str | None = Field(
        default=None,
        description="Base64-encoded file content",
    )
    file_uri: str | None = Field(
        default=None,
        description="Remote file reference (reference ingestion)",
    )
    extracted_text: str | None = Field(
        default=None,
        description="Locally extracted plain text, if any",
    )

    @model_validator(mode="after")
    def require_payload(self) -> "Document":
        """Ensure the document carries either inline content or a reference."""
        if not self.content and not self.file_uri:
            raise ValueError("Document requires either content or file_uri")
        return self

    @property
    def is_reference(self) -> bool:
        return not self.content and bool(self.file_uri)


class Column(BaseModel):
    """
    A user-defined column of the extraction table.

    Attributes:
        id: Unique identifier of the column.
        name: Column header shown to the user and the model.
        type: Declared value type, drives the format instruction.
        prompt: Natural-language extraction instruction.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique column identifier",
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Column name",
        examples=["Invoice Total", "Contract Start Date"],
    )
    type: ColumnType = Field(
        default=ColumnType.TEXT,
        description="Declared value type",
    )
    prompt: str = Field(
        default="",
        description="Extraction instruction for the model",
        examples=["The total amount due, including tax"],
    )

    @field_validator("type", mode="before")
    @classmethod
    def coerce_unknown_type(cls, v: Any) -> Any:
        """Treat unknown declared types as free text."""
        if isinstance(v, ColumnType):
            return v
        try:
            return ColumnType(str(v).lower())
        except ValueError:
            return ColumnType.TEXT


class ExtractionCell(BaseModel):
    """
    The structured result of applying one column to one document.

    `value` is always present and `confidence` is never null, whatever the
    model returned.
    """

    value: str = Field(default="", description="Extracted value")
    confidence: Confidence = Field(
        default=Confidence.LOW,
        description="Self-reported confidence of the model",
    )
    quote: str = Field(default="", description="Verbatim source quote")
    page: int = Field(default=1, ge=1, description="Page the quote was found on")
    reasoning: str = Field(default="", description="Brief explanation from the model")
    status: ReviewStatus = Field(
        default=ReviewStatus.NEEDS_REVIEW,
        description="Human review status",
    )


# document id -> column id -> cell
ExtractionResult = dict[str, dict[str, ExtractionCell]]


class ConversionOutcome(BaseModel):
    """Result of a Word to PDF conversion attempt."""

    pdf_data: str = Field(..., description="Base64 payload (converted or original)")
    converted: bool = Field(..., description="Whether a conversion took place")
    file_name: str = Field(..., description="Resulting file name")


class ChatTurn(BaseModel):
    """A prior message in the chat conversation."""

    role: Literal["user", "assistant"]
    content: str


# =============================================================================
# API Request / Response Models
# =============================================================================


class ExtractRequest(BaseModel):
    """Request model for extracting one cell."""

    document: Document = Field(..., description="Document to extract from")
    column: Column = Field(..., description="Column to extract")


class ChatRequest(BaseModel):
    """Request model for asking a question about the extraction table."""

    message: str = Field(..., min_length=1, description="User question")
    documents: list[Document] = Field(default_factory=list)
    columns: list[Column] = Field(default_factory=list)
    results: ExtractionResult = Field(default_factory=dict)
    history: list[ChatTurn] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Response model for the chat endpoint."""

    reply: str = Field(..., description="Answer from the analyst model")


class PromptHelperRequest(BaseModel):
    """Request model for drafting a column extraction instruction."""

    name: str = Field(..., min_length=1, description="Column name")
    type: ColumnType = Field(default=ColumnType.TEXT, description="Column type")
    current_prompt: str | None = Field(
        default=None,
        description="Existing draft instruction to improve",
    )


class PromptHelperResponse(BaseModel):
    """Response model for the prompt helper."""

    prompt: str = Field(..., description="Suggested extraction instruction")


class ConvertDocumentRequest(BaseModel):
    """Request body of the conversion endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    file_data: str = Field(default="", alias="fileData", description="Base64 file content")
    file_name: str = Field(default="", alias="fileName", description="Original file name")
    mime_type: str = Field(default="", alias="mimeType", description="Original MIME type")


class ConvertDocumentResponse(BaseModel):
    """Successful response of the conversion endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    pdf_data: str = Field(..., alias="pdfData")
    converted: bool
    original_file_name: str | None = Field(default=None, alias="originalFileName")
    new_file_name: str | None = Field(default=None, alias="newFileName")
    message: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(default="1.0.0")
    message: str | None = None
