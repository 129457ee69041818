"""Tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from app.backend.models import (
    ChatRequest,
    Column,
    ColumnType,
    Confidence,
    ConvertDocumentRequest,
    ConvertDocumentResponse,
    Document,
    ExtractionCell,
    ReviewStatus,
)


class TestDocument:
    """Tests for Document model."""

    def test_inline_document(self):
        """Test creating an inline document."""
        doc = Document(name="a.pdf", mime_type="application/pdf", content="JVBERi0=")
        assert doc.id
        assert doc.is_reference is False

    def test_reference_document(self):
        """Test creating a document that references an uploaded file."""
        doc = Document(name="a.pdf", file_uri="file-a")
        assert doc.is_reference is True
        assert doc.mime_type == "application/octet-stream"

    def test_payload_required(self):
        """Test that a document needs content or a file reference."""
        with pytest.raises(ValidationError, match="content or file_uri"):
            Document(name="a.pdf")

    def test_document_is_immutable(self):
        """Test that encoded documents cannot be changed."""
        doc = Document(name="a.pdf", content="eA==")
        with pytest.raises(ValidationError):
            doc.name = "b.pdf"

    def test_ids_are_unique(self):
        """Test that generated identifiers differ."""
        assert Document(name="a", content="eA==").id != Document(name="a", content="eA==").id


class TestColumn:
    """Tests for Column model."""

    def test_defaults(self):
        """Test default type and prompt."""
        column = Column(name="Vendor")
        assert column.type == ColumnType.TEXT
        assert column.prompt == ""

    @pytest.mark.parametrize("raw, expected", [
        ("date", ColumnType.DATE),
        ("BOOLEAN", ColumnType.BOOLEAN),
        ("currency", ColumnType.TEXT),
        (None, ColumnType.TEXT),
    ])
    def test_type_coercion(self, raw, expected):
        """Test that unknown types fall back to text."""
        assert Column(name="X", type=raw).type == expected

    def test_long_names_and_prompts_accepted(self):
        """Test that user-defined columns have no length ceiling."""
        column = Column(name="N" * 500, prompt="Extract " * 2000)
        assert len(column.name) == 500
        assert column.prompt.startswith("Extract")

    def test_empty_name_rejected(self):
        """Test that column names are required."""
        with pytest.raises(ValidationError):
            Column(name="")


class TestExtractionCell:
    """Tests for ExtractionCell model."""

    def test_defaults(self):
        """Test that a bare cell is complete."""
        cell = ExtractionCell()
        assert cell.value == ""
        assert cell.confidence == Confidence.LOW
        assert cell.page == 1
        assert cell.status == ReviewStatus.NEEDS_REVIEW

    def test_page_must_be_positive(self):
        """Test that page numbers start at one."""
        with pytest.raises(ValidationError):
            ExtractionCell(page=0)

    def test_serialization(self):
        """Test enum values in the JSON form."""
        data = ExtractionCell(value="x", confidence=Confidence.HIGH).model_dump(mode="json")
        assert data["confidence"] == "High"
        assert data["status"] == "needs_review"


class TestChatRequest:
    """Tests for ChatRequest model."""

    def test_nested_results(self):
        """Test that the results table parses into cells."""
        request = ChatRequest(
            message="Q?",
            results={"doc": {"col": {"value": "1", "confidence": "Medium"}}},
        )
        assert request.results["doc"]["col"].confidence == Confidence.MEDIUM

    def test_history_roles(self):
        """Test that only user and assistant turns are accepted."""
        with pytest.raises(ValidationError):
            ChatRequest(message="Q?", history=[{"role": "system", "content": "x"}])


class TestConvertDocumentModels:
    """Tests for the conversion endpoint models."""

    def test_request_aliases(self):
        """Test camelCase request fields."""
        request = ConvertDocumentRequest.model_validate(
            {"fileData": "UEs=", "fileName": "a.docx", "mimeType": "application/msword"}
        )
        assert request.file_data == "UEs="
        assert request.file_name == "a.docx"

    def test_request_missing_fields_default_empty(self):
        """Test that missing fields are empty rather than invalid."""
        request = ConvertDocumentRequest.model_validate({})
        assert request.file_data == ""
        assert request.file_name == ""

    def test_response_dump(self):
        """Test camelCase response serialization."""
        response = ConvertDocumentResponse(
            pdf_data="JVBERi0=",
            converted=True,
            original_file_name="a.docx",
            new_file_name="a.pdf",
        )
        assert response.model_dump(by_alias=True, exclude_none=True) == {
            "pdfData": "JVBERi0=",
            "converted": True,
            "originalFileName": "a.docx",
            "newFileName": "a.pdf",
        }
