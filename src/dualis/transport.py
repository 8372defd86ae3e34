"""HTTP transport for the portal.

Wraps one httpx.AsyncClient for the lifetime of a session: its cookie jar
carries the portal's cookies across the redirect chain and all later
requests. Redirects are never followed automatically because the login
answer must be inspected for its Refresh header.
"""

from dataclasses import dataclass

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from dualis.config import DualisConfig
from dualis.errors import NetworkError, ParseError
from dualis.logging import get_logger

logger = get_logger(__name__)

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept-Language": "de-DE,de;q=0.9",
}


@dataclass(frozen=True)
class PortalResponse:
    """The parts of a response the client looks at."""

    url: str
    status_code: int
    headers: httpx.Headers
    text: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class PortalTransport:
    """Thin async HTTP layer with timeouts, retries and error mapping.

    Timeouts, connection failures and 5xx answers raise NetworkError after
    config.retry_attempts attempts. A URL httpx refuses to send raises
    ParseError without a retry. Other status codes are returned.
    """

    def __init__(self, config: DualisConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers=DEFAULT_HEADERS,
            timeout=httpx.Timeout(config.request_timeout_seconds),
            follow_redirects=False,
        )

    async def get(self, url: str, *, name: str = "get") -> PortalResponse:
        return await self._send("GET", url, name=name)

    async def post_form(self, url: str, data: dict[str, str], *, name: str = "post") -> PortalResponse:
        return await self._send("POST", url, name=name, data=data)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        name: str,
        data: dict[str, str] | None = None,
    ) -> PortalResponse:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.config.retry_attempts)),
            wait=wait_fixed(self.config.retry_wait_seconds),
            retry=retry_if_exception_type(NetworkError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._send_once(method, url, name=name, data=data)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _send_once(
        self,
        method: str,
        url: str,
        *,
        name: str,
        data: dict[str, str] | None,
    ) -> PortalResponse:
        logger.debug("request_started", request=name, method=method)
        try:
            response = await self.client.request(
                method,
                url,
                data=data,
                timeout=httpx.Timeout(self.config.request_timeout_seconds),
            )
        except httpx.InvalidURL as e:
            logger.warning("request_invalid_url", request=name, error=str(e))
            raise ParseError(f"{name}: malformed URL: {e}") from e
        except httpx.TimeoutException as e:
            logger.warning("request_timeout", request=name, error=str(e))
            raise NetworkError(f"{name} timed out: {e}") from e
        except httpx.TransportError as e:
            logger.warning("request_failed", request=name, error=str(e), type=type(e).__name__)
            raise NetworkError(f"{name} failed: {e}") from e

        if response.status_code >= 500:
            logger.warning("request_server_error", request=name, status=response.status_code)
            raise NetworkError(
                f"{name} failed with status {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug("request_finished", request=name, status=response.status_code)
        return PortalResponse(
            url=str(response.url),
            status_code=response.status_code,
            headers=response.headers,
            text=response.text,
        )

    def clear_cookies(self) -> None:
        self.client.cookies.clear()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
