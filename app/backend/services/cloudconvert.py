"""
Word to PDF conversion through the CloudConvert jobs API.

A job is a three-task graph (import base64 -> convert -> export URL). The job
is polled at a fixed interval up to a fixed number of attempts; the exported
PDF is then downloaded and returned base64-encoded.
"""

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable

import httpx

from ..exceptions import (
    ConfigurationError,
    ConversionError,
    ConversionJobError,
    ConversionTimeoutError,
)

logger = logging.getLogger(__name__)

EXPORT_TASK_NAME = "export-pdf"
UNEXPECTED_RESPONSE = "Unexpected response from conversion provider"


def build_job_payload(file_data: str, file_name: str) -> dict[str, Any]:
    """Task graph converting a base64 upload to a downloadable PDF."""
    return {
        "tasks": {
            "import-file": {
                "operation": "import/base64",
                "file": file_data,
                "filename": file_name,
            },
            "convert-to-pdf": {
                "operation": "convert",
                "input": "import-file",
                "output_format": "pdf",
            },
            EXPORT_TASK_NAME: {
                "operation": "export/url",
                "input": "convert-to-pdf",
            },
        }
    }


def export_url(job: dict[str, Any]) -> str | None:
    """URL of the first file produced by the export task, if any."""
    for task in job.get("tasks") or []:
        if not isinstance(task, dict) or task.get("name") != EXPORT_TASK_NAME:
            continue
        result = task.get("result")
        files = result.get("files") if isinstance(result, dict) else None
        if isinstance(files, list) and files and isinstance(files[0], dict):
            return files[0].get("url") or None
    return None


def job_data(response: httpx.Response) -> dict[str, Any]:
    """
    The `data` object of a jobs API response.

    Raises:
        ConversionError: The body is not JSON or has no `data` object.
    """
    try:
        job = response.json()["data"]
    except (KeyError, TypeError, ValueError) as e:
        raise ConversionError(UNEXPECTED_RESPONSE, details=response.text) from e
    if not isinstance(job, dict):
        raise ConversionError(UNEXPECTED_RESPONSE, details=response.text)
    return job


class CloudConvertClient:
    """Client for the CloudConvert v2 jobs API."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.cloudconvert.com/v2",
        poll_interval: float = 1.0,
        max_attempts: int = 30,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the conversion client.

        Args:
            api_key: CloudConvert API key.
            base_url: API root.
            poll_interval: Seconds between job status checks.
            max_attempts: Status checks before giving up.
            timeout: HTTP timeout per request in seconds.
            http_client: Optional shared httpx client (tests inject a mock transport).
            sleep: Awaitable sleep used between polls.
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self._http_client = http_client
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def convert_to_pdf(self, file_data: str, file_name: str) -> str:
        """
        Convert a base64 Word document and return the PDF as base64.

        Raises:
            ConfigurationError: No API key configured.
            ConversionError: Job creation, status check, or download failed,
                or the finished job has no output URL.
            ConversionJobError: The provider reported the job as failed.
            ConversionTimeoutError: The job did not finish within max_attempts.
        """
        if not self.api_key:
            raise ConfigurationError(
                "CloudConvert API key not configured. Please set CLOUDCONVERT_API_KEY "
                "environment variable."
            )

        client = self._http_client or httpx.AsyncClient(timeout=self.timeout)
        try:
            job_id = await self._create_job(client, file_data, file_name)
            job = await self._wait_for_job(client, job_id)

            url = export_url(job)
            if not url:
                raise ConversionError("No PDF output URL found")

            pdf_bytes = await self._download(client, url)
        except httpx.HTTPError as e:
            logger.error("CloudConvert request failed: %s", e)
            raise ConversionError(f"Conversion provider request failed: {e}") from e
        finally:
            if self._http_client is None:
                await client.aclose()

        logger.info("Converted '%s' to PDF (%d bytes)", file_name, len(pdf_bytes))
        return base64.b64encode(pdf_bytes).decode("ascii")

    async def _create_job(self, client: httpx.AsyncClient, file_data: str, file_name: str) -> str:
        response = await client.post(
            f"{self.base_url}/jobs",
            headers={**self._headers(), "Content-Type": "application/json"},
            json=build_job_payload(file_data, file_name),
        )
        if not response.is_success:
            logger.error("CloudConvert job creation failed: %s", response.text)
            raise ConversionError("Failed to create conversion job", details=response.text)

        job_id = job_data(response).get("id")
        if not job_id:
            raise ConversionError(UNEXPECTED_RESPONSE, details=response.text)
        logger.info("Created conversion job %s for '%s'", job_id, file_name)
        return job_id

    async def _wait_for_job(self, client: httpx.AsyncClient, job_id: str) -> dict[str, Any]:
        for attempt in range(1, self.max_attempts + 1):
            response = await client.get(f"{self.base_url}/jobs/{job_id}", headers=self._headers())
            if not response.is_success:
                raise ConversionError("Failed to check job status", details=response.text)

            job = job_data(response)
            status = job.get("status")
            if status == "finished":
                return job
            if status == "error":
                raise ConversionJobError("Conversion job failed", details=str(job.get("message", "")))

            logger.debug(
                "Conversion job %s is '%s' (attempt %d/%d)",
                job_id,
                status,
                attempt,
                self.max_attempts,
            )
            await self._sleep(self.poll_interval)

        raise ConversionTimeoutError("Conversion timeout")

    async def _download(self, client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url)
        if not response.is_success:
            raise ConversionError("Failed to download converted PDF")
        return response.content


_cloudconvert_client: CloudConvertClient | None = None


def get_cloudconvert_client() -> CloudConvertClient:
    """Get or create the conversion client singleton."""
    global _cloudconvert_client
    if _cloudconvert_client is None:
        from ..config import get_settings

        settings = get_settings()
        _cloudconvert_client = CloudConvertClient(
            settings.cloudconvert_api_key,
            base_url=settings.cloudconvert_base_url,
            poll_interval=settings.conversion_poll_interval,
            max_attempts=settings.conversion_max_attempts,
        )
    return _cloudconvert_client
