"""Pytest configuration and fixtures."""

import base64
import io
from types import SimpleNamespace
from typing import Any, Callable, Generator

import pytest
from fastapi.testclient import TestClient

from app.backend.main import app
from app.backend.models import Column, ColumnType, Document


class FakeCompletions:
    """Stand-in for `client.chat.completions` returning scripted replies."""

    def __init__(self, replies: list[Any]):
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=reply))]
        )


class FakeOpenAI:
    """Minimal AsyncOpenAI double exposing chat.completions.create."""

    def __init__(self, replies: list[Any]):
        self.completions = FakeCompletions(replies)
        self.chat = SimpleNamespace(completions=self.completions)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeUploads:
    """Stand-in for `client.uploads` recording the create / parts / complete handshake."""

    def __init__(self, file_id: str = "file-abc", error: BaseException | None = None):
        self.file_id = file_id
        self.error = error
        self.created: list[dict[str, Any]] = []
        self.part_data: list[bytes] = []
        self.completed: list[dict[str, Any]] = []
        self.parts = SimpleNamespace(create=self._create_part)

    async def create(self, **kwargs: Any) -> Any:
        if self.error is not None:
            raise self.error
        self.created.append(kwargs)
        return SimpleNamespace(id="upload-1", status="pending")

    async def _create_part(self, *, upload_id: str, data: bytes) -> Any:
        self.part_data.append(data)
        return SimpleNamespace(id=f"part-{len(self.part_data)}", upload_id=upload_id)

    async def complete(self, *, upload_id: str, part_ids: list[str]) -> Any:
        self.completed.append({"upload_id": upload_id, "part_ids": part_ids})
        stored = SimpleNamespace(id=self.file_id, filename=self.created[-1]["filename"])
        return SimpleNamespace(id=upload_id, status="completed", file=stored if self.file_id else None)


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_openai() -> Callable[..., FakeOpenAI]:
    """Factory for fake OpenAI clients; the last reply repeats once the script runs out."""

    def factory(*replies: Any) -> FakeOpenAI:
        return FakeOpenAI(list(replies))

    return factory


@pytest.fixture
def no_sleep() -> Callable[[float], Any]:
    """Awaitable sleep that records requested delays instead of waiting."""
    delays: list[float] = []

    async def sleep(delay: float) -> None:
        delays.append(delay)

    sleep.delays = delays  # type: ignore[attr-defined]
    return sleep


@pytest.fixture
def pdf_document() -> Document:
    """A small inline PDF document."""
    return Document(
        id="doc-pdf",
        name="invoice.pdf",
        mime_type="application/pdf",
        content=base64.b64encode(b"%PDF-1.4 test").decode("ascii"),
    )


@pytest.fixture
def text_document() -> Document:
    """An inline plain text document."""
    return Document(
        id="doc-txt",
        name="notes.txt",
        mime_type="text/plain",
        content=base64.b64encode("Invoice total: 1,200 EUR".encode("utf-8")).decode("ascii"),
    )


@pytest.fixture
def total_column() -> Column:
    """A number column."""
    return Column(
        id="col-total",
        name="Total",
        type=ColumnType.NUMBER,
        prompt="The total amount due",
    )


@pytest.fixture
def sample_docx_bytes() -> bytes:
    """Create a small .docx file with a paragraph and a table."""
    from docx import Document as DocxDocument

    doc = DocxDocument()
    doc.add_paragraph("Invoice Total: $1,200")
    table = doc.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "Vendor"
    table.cell(0, 1).text = "Acme Corp"
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def extraction_reply() -> str:
    """A well-formed model reply wrapped in prose."""
    return (
        "Here is the result:\n"
        '{"value": "1200", "confidence": "High", "quote": "Invoice total: 1,200 EUR", '
        '"page": 2, "reasoning": "Stated in the summary"}\n'
        "Let me know if you need anything else."
    )


@pytest.fixture
def make_uploads_client() -> Callable[..., SimpleNamespace]:
    """Factory for fake OpenAI clients exposing only the uploads handshake."""

    def factory(**kwargs: Any) -> SimpleNamespace:
        return SimpleNamespace(uploads=FakeUploads(**kwargs))

    return factory
