"""
Shared exceptions for the extraction service.

One hierarchy covers ingestion, conversion and model calls so the API layer
can map each failure class to a status code in one place.
"""


class ServiceError(Exception):
    """Base class for every failure raised by the service."""

    pass


class ConfigurationError(ServiceError):
    """Raised when a required credential or service URL is not configured."""

    pass


class ReadError(ServiceError):
    """Raised when an uploaded file cannot be read."""

    pass


class UploadError(ServiceError):
    """Raised when the resumable upload handshake fails."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConversionError(ServiceError):
    """Raised when a Word to PDF conversion fails."""

    status_code = 500

    def __init__(self, message: str, details: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class ConversionJobError(ConversionError):
    """Raised when the conversion provider reports a failed job."""

    pass


class ConversionTimeoutError(ConversionError):
    """Raised when a conversion job does not finish within the polling ceiling."""

    status_code = 504


class AIServiceError(ServiceError):
    """Raised when AI service operations fail."""

    pass


class ModelCallError(AIServiceError):
    """Raised when the model API call itself fails (transport, status, rate limit)."""

    def __init__(self, message: str, status_code: int | None = None, rate_limited: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.rate_limited = rate_limited


class ResponseContractError(AIServiceError):
    """Raised when the model reply does not follow the mandated JSON contract."""

    pass


class EmptyResponseError(ResponseContractError):
    """Raised when the model returns no text at all."""

    pass


class NoJsonFoundError(ResponseContractError):
    """Raised when no JSON object can be located in the model reply."""

    pass


class MalformedJsonError(ResponseContractError):
    """Raised when the located JSON object cannot be parsed."""

    pass


class IncompleteResponseError(MalformedJsonError):
    """Raised when required reply fields are missing and the policy asks for a retry."""

    pass


class ExtractionFailure(AIServiceError):
    """Catch-all for unexpected failures during extraction."""

    pass
