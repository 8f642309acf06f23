"""
Exception taxonomy for pvenom.

Every error carries enough context (URL, HTTP status, a capped body snippet)
to diagnose a failure without retrying blindly.
"""

from typing import List, Optional, Tuple

BODY_SNIPPET_LIMIT = 200


def snippet(text: Optional[str], limit: int = BODY_SNIPPET_LIMIT) -> str:
    """Trim a response body for inclusion in an error message."""
    if not text:
        return ""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class PvenomError(Exception):
    """Base class for all pvenom errors."""


class ConfigError(PvenomError):
    """Required settings are missing or malformed."""


class ResolutionError(PvenomError):
    """No transport (HTTPS or HTTP) reached the controller."""

    def __init__(self, attempts: List[Tuple[str, Exception]]):
        self.attempts = attempts
        details = "; ".join(f"{url}: {cause}" for url, cause in attempts)
        super().__init__(f"Could not reach controller ({details})")


class AuthError(PvenomError):
    """Login against the ticket endpoint failed."""

    def __init__(self, message: str, url: str):
        self.url = url
        super().__init__(message)


class InvalidCredentials(AuthError):
    def __init__(self, url: str, status: int):
        self.status = status
        super().__init__(f"Invalid credentials (HTTP {status}) at {url}", url)


class UnexpectedResponse(AuthError):
    def __init__(self, url: str, status: int, body: Optional[str] = None):
        self.status = status
        self.body_snippet = snippet(body)
        message = f"Unexpected authentication response (HTTP {status}) at {url}"
        if self.body_snippet:
            message += f": {self.body_snippet}"
        super().__init__(message, url)


class Unreachable(AuthError):
    def __init__(self, url: str, cause: Exception):
        self.cause = cause
        super().__init__(f"Controller unreachable at {url}: {cause}", url)


class RequestError(PvenomError):
    """An authenticated request did not produce a usable response."""

    def __init__(self, message: str, url: str):
        self.url = url
        super().__init__(message)


class TransportError(RequestError):
    def __init__(self, url: str, cause: Exception):
        self.cause = cause
        super().__init__(f"Request to {url} failed: {cause}", url)


class RequestTimeout(RequestError):
    def __init__(self, url: str, timeout=None):
        self.timeout = timeout
        super().__init__(f"Request to {url} timed out", url)


class SessionExpired(RequestError):
    """The controller rejected the ticket; re-authentication is up to the caller."""

    def __init__(self, url: str, reason: str = "session ticket rejected"):
        super().__init__(f"Session expired: {reason} ({url})", url)


class ControllerError(RequestError):
    """The controller answered with a non-2xx status other than 401."""

    def __init__(self, url: str, status: int, body: Optional[str] = None):
        self.status = status
        self.body_snippet = snippet(body)
        message = f"HTTP {status} from {url}"
        if self.body_snippet:
            message += f": {self.body_snippet}"
        super().__init__(message, url)


class NotFound(ControllerError):
    pass


class DecodeError(PvenomError):
    """The controller answered, but the payload does not match the expected shape."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Could not decode response from {path}: {cause}")
