"""Domain exceptions raised by services and translated by the API layer."""

from typing import Any, Optional


class FacetStudioError(Exception):
    """Base class for application errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FacetStudioError):
    """Request rejected before any side effect."""

    status_code = 422


class ConfigurationError(FacetStudioError):
    """The acting user is not set up to perform the operation."""

    status_code = 400


class NotFoundError(FacetStudioError):
    """A referenced record does not exist."""

    status_code = 404


class DuplicateJobFound(FacetStudioError):
    """A completed job with the same fingerprint already exists."""

    status_code = 409

    def __init__(self, job: Any):
        super().__init__(f"An identical generation job already exists: {job.id}")
        self.job = job


class GenerationFailed(FacetStudioError):
    """The generation call failed or produced nothing."""

    status_code = 502

    def __init__(self, message: str, job_id: Optional[Any] = None):
        super().__init__(message)
        self.job_id = job_id
