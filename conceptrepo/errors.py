"""
Errors raised by the content store client and the index subsystem.

Each remote-store error carries the HTTP status the API layer should answer with.
"""


class ContentStoreError(Exception):
    """The remote content store declined or failed a call."""

    status_code = 502

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class NotFound(ContentStoreError):
    status_code = 404


class Conflict(ContentStoreError):
    """The revision token passed on a write is stale (or missing for an existing path)."""

    status_code = 409


class Forbidden(ContentStoreError):
    status_code = 403


class Unauthorized(ContentStoreError):
    status_code = 401


class RateLimited(ContentStoreError):
    status_code = 429

    def __init__(self, message: str, path: str | None = None, retry_after: int | None = None):
        super().__init__(message, path)
        self.retry_after = retry_after


class Unreachable(ContentStoreError):
    """The content store could not be reached, or did not answer in time."""

    status_code = 504


class MalformedPayload(ValueError):
    """Object content is not valid JSON, or not a JSON object."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class AllocationExhausted(Exception):
    status_code = 503


class SecretNotConfigured(Exception):
    status_code = 500
