"""Error hierarchy for portal access and retry classification.

Transient failures (network timeouts, 5xx, an expired session that a fresh
login can repair) are retried; permanent failures (rejected credentials, a
broken redirect chain, a page that does not have the expected structure)
are not.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(NetworkError), stop=stop_after_attempt(2))
    async def get(url: str):
        ...
"""


class PortalError(Exception):
    """Base exception for all portal errors."""

    pass


class TransientError(PortalError):
    """Temporary failure that may succeed on retry."""

    pass


class NetworkError(TransientError):
    """Transport failure, timeout or 5xx answer from the portal."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SessionExpiredError(TransientError):
    """The portal answered with its "session expired" page.

    Repaired by a single transparent re-authentication.
    """

    pass


class ReAuthInProgressError(TransientError):
    """Another re-authentication is already running; the caller is told busy."""

    pass


class PermanentError(PortalError):
    """Failure that won't succeed on retry."""

    pass


class AuthenticationError(PermanentError):
    """Login rejected, token not extractable or redirect chain broken."""

    pass


class RedirectLoopError(AuthenticationError):
    """The redirect chain revisited a URL or exceeded the hop limit."""

    def __init__(self, message: str, hops: int) -> None:
        super().__init__(message)
        self.hops = hops


class ParseError(PermanentError):
    """An expected structural element is missing from a page.

    The page extractors absorb it and return their documented default. The
    transport raises it for a URL taken from a page that httpx cannot send.
    """

    pass
