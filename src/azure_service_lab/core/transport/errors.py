# -*- coding: utf-8 -*-

"""
Error taxonomy shared by every transport mechanism and service caller.

None of these errors are recovered inside the core. They carry the raw
diagnostic data (status code, body, failure detail) so the caller can report
it verbatim.
"""


class AzureLabError(Exception):
    """Base class for every error raised by azure_service_lab."""


class AuthError(AzureLabError):
    """The identity provider rejected the credential."""

    def __init__(self, detail, status=None):
        self.detail = detail
        self.status = status
        message = f"Authentication failed: {detail}"
        if status is not None:
            message = f"Authentication failed (status {status}): {detail}"
        super().__init__(message)


class HTTPError(AzureLabError):
    """A response outside the [200, 300) range. The body is kept verbatim."""

    def __init__(self, status: int, body: str, url: str | None = None):
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"HTTP {status}: {body}")

    def __eq__(self, other):
        if not isinstance(other, HTTPError):
            return NotImplemented
        return (self.status, self.body) == (other.status, other.body)

    def __hash__(self):
        return hash((self.status, self.body))


class DecodeError(AzureLabError):
    """The response body does not match the expected schema."""

    def __init__(self, message: str, body: str | None = None):
        self.body = body
        super().__init__(message)


class TransientNetworkError(AzureLabError):
    """Connection-level failure (DNS, refused connection, timeout)."""


class OperationFailed(AzureLabError):
    """A long-running operation reached the terminal Failed state."""

    def __init__(self, detail):
        self.detail = detail
        super().__init__(f"Operation failed: {detail}")


class OperationCanceled(AzureLabError):
    """A long-running operation was canceled on the server side."""

    def __init__(self, detail=None):
        self.detail = detail
        super().__init__(f"Operation canceled: {detail}" if detail else "Operation canceled")


class PollingAbandoned(AzureLabError):
    """The caller stopped waiting. The server-side operation keeps running."""


class PagerExhausted(AzureLabError):
    """next_page() was called after the server signalled the last page."""
