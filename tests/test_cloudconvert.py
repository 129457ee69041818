"""Tests for the conversion provider client."""

import base64
import json

import httpx
import pytest

from app.backend.exceptions import (
    ConfigurationError,
    ConversionError,
    ConversionJobError,
    ConversionTimeoutError,
)
from app.backend.services.cloudconvert import (
    CloudConvertClient,
    build_job_payload,
    export_url,
)

BASE_URL = "https://cc.example/v2"
PDF_BYTES = b"%PDF-1.4 converted"


def finished_job(url: str | None = "https://storage.example/out.pdf") -> dict:
    files = [{"url": url}] if url else []
    return {
        "id": "job-1",
        "status": "finished",
        "tasks": [
            {"name": "import-file", "status": "finished"},
            {"name": "export-pdf", "status": "finished", "result": {"files": files}},
        ],
    }


def provider_transport(statuses: list[dict], create_status: int = 201):
    """Mock provider: job creation, scripted status checks, file download."""
    calls = {"create": [], "status": 0, "download": 0}
    remaining = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path == "/v2/jobs":
            calls["create"].append(json.loads(request.content))
            if create_status >= 400:
                return httpx.Response(create_status, text="invalid api key")
            return httpx.Response(create_status, json={"data": {"id": "job-1"}})
        if request.url.path == "/v2/jobs/job-1":
            calls["status"] += 1
            job = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            return httpx.Response(200, json={"data": job})
        if request.url.host == "storage.example":
            calls["download"] += 1
            return httpx.Response(200, content=PDF_BYTES)
        return httpx.Response(404)

    return httpx.MockTransport(handler), calls


def make_client(transport: httpx.MockTransport, sleep, **kwargs) -> CloudConvertClient:
    return CloudConvertClient(
        "cc-key",
        base_url=BASE_URL,
        http_client=httpx.AsyncClient(transport=transport),
        sleep=sleep,
        **kwargs,
    )


class TestJobHelpers:
    """Tests for job payload and result helpers."""

    def test_job_payload_task_graph(self):
        """Test the import -> convert -> export task graph."""
        payload = build_job_payload("UEs=", "a.docx")
        tasks = payload["tasks"]

        assert tasks["import-file"] == {
            "operation": "import/base64",
            "file": "UEs=",
            "filename": "a.docx",
        }
        assert tasks["convert-to-pdf"]["input"] == "import-file"
        assert tasks["convert-to-pdf"]["output_format"] == "pdf"
        assert tasks["export-pdf"] == {"operation": "export/url", "input": "convert-to-pdf"}

    def test_export_url(self):
        """Test locating the exported file URL."""
        assert export_url(finished_job()) == "https://storage.example/out.pdf"
        assert export_url(finished_job(url=None)) is None
        assert export_url({"tasks": []}) is None


class TestCloudConvertClient:
    """Tests for job creation, polling and download."""

    @pytest.mark.asyncio
    async def test_successful_conversion(self, no_sleep):
        """Test a job that finishes on the second status check."""
        transport, calls = provider_transport(
            [{"id": "job-1", "status": "processing"}, finished_job()]
        )
        client = make_client(transport, no_sleep)

        pdf_data = await client.convert_to_pdf("UEs=", "a.docx")

        assert base64.b64decode(pdf_data) == PDF_BYTES
        assert len(calls["create"]) == 1
        assert calls["status"] == 2
        assert calls["download"] == 1
        assert no_sleep.delays == [1.0]

    @pytest.mark.asyncio
    async def test_polling_timeout(self, no_sleep):
        """Test that a job never finishing times out after 30 checks."""
        transport, calls = provider_transport([{"id": "job-1", "status": "processing"}])
        client = make_client(transport, no_sleep)

        with pytest.raises(ConversionTimeoutError) as exc_info:
            await client.convert_to_pdf("UEs=", "a.docx")

        assert exc_info.value.status_code == 504
        assert calls["status"] == 30
        assert len(no_sleep.delays) == 30

    @pytest.mark.asyncio
    async def test_job_error(self, no_sleep):
        """Test that a job reporting an error fails the conversion."""
        transport, _ = provider_transport([{"id": "job-1", "status": "error", "message": "bad file"}])
        client = make_client(transport, no_sleep)

        with pytest.raises(ConversionJobError) as exc_info:
            await client.convert_to_pdf("UEs=", "a.docx")

        assert exc_info.value.status_code == 500
        assert exc_info.value.details == "bad file"

    @pytest.mark.asyncio
    async def test_job_creation_failure(self, no_sleep):
        """Test that a rejected job creation carries the provider's detail."""
        transport, _ = provider_transport([], create_status=401)
        client = make_client(transport, no_sleep)

        with pytest.raises(ConversionError, match="Failed to create conversion job") as exc_info:
            await client.convert_to_pdf("UEs=", "a.docx")

        assert exc_info.value.details == "invalid api key"

    @pytest.mark.asyncio
    async def test_job_creation_without_id(self, no_sleep):
        """Test that an accepted job creation without a job id fails cleanly."""
        transport = httpx.MockTransport(
            lambda r: httpx.Response(201, json={"errors": "unexpected"})
        )
        client = make_client(transport, no_sleep)

        with pytest.raises(ConversionError, match="Unexpected response") as exc_info:
            await client.convert_to_pdf("UEs=", "a.docx")

        assert exc_info.value.status_code == 500
        assert "unexpected" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_non_json_status_reply(self, no_sleep):
        """Test that a status check returning non-JSON fails cleanly."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(201, json={"data": {"id": "job-1"}})
            return httpx.Response(200, text="<html>maintenance</html>")

        client = make_client(httpx.MockTransport(handler), no_sleep)

        with pytest.raises(ConversionError, match="Unexpected response"):
            await client.convert_to_pdf("UEs=", "a.docx")

    @pytest.mark.asyncio
    async def test_missing_output_url(self, no_sleep):
        """Test that a finished job without output fails."""
        transport, _ = provider_transport([finished_job(url=None)])
        client = make_client(transport, no_sleep)

        with pytest.raises(ConversionError, match="No PDF output URL found"):
            await client.convert_to_pdf("UEs=", "a.docx")

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        """Test that an unconfigured client raises ConfigurationError."""
        client = CloudConvertClient(None)
        assert client.configured is False
        with pytest.raises(ConfigurationError):
            await client.convert_to_pdf("UEs=", "a.docx")
