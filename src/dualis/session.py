"""Session management for CampusNet authentication.

SessionManager owns the Session value: it submits the login form, reads the
token out of the Refresh header, follows the intermediate redirect pages to
the home page and discovers the navigation endpoints there. It can replay
the last credentials once the portal reports an expired session.

States:
    LOGGED_OUT -> AUTHENTICATING -> FOLLOWING_REDIRECT -> AUTHENTICATED
    AUTHENTICATED -> RE_AUTHENTICATING -> AUTHENTICATED | FAILED
"""

import asyncio
from enum import Enum

from dualis import demo
from dualis.config import DualisConfig
from dualis.errors import (
    AuthenticationError,
    NetworkError,
    PortalError,
    ReAuthInProgressError,
    RedirectLoopError,
)
from dualis.logging import get_logger
from dualis.models import Credentials, PortalEndpoints, Session
from dualis.pages.auth import extract_redirect_url, is_home_page, is_redirect_page
from dualis.pages.home import parse_home_page
from dualis.transport import PortalTransport
from dualis.urls import DLL_PATH, extract_refresh_target, extract_token, is_valid_token, make_absolute

logger = get_logger(__name__)


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    AUTHENTICATING = "authenticating"
    FOLLOWING_REDIRECT = "following_redirect"
    AUTHENTICATED = "authenticated"
    RE_AUTHENTICATING = "re_authenticating"
    FAILED = "failed"


def login_form(username: str, password: str) -> dict[str, str]:
    """Fixed field set of the CampusNet login form."""
    return {
        "usrname": username,
        "pass": password,
        "APPNAME": "CampusNet",
        "PRGNAME": "LOGINCHECK",
        "ARGUMENTS": "clino,usrname,pass,menuno,menu_type,browser,platform",
        "clino": "000000000000001",
        "menuno": "000324",
        "menu_type": "classic",
        "browser": "",
        "platform": "",
    }


class SessionManager:
    """Runs the login state machine and holds the resulting Session.

    Only the login and re-authentication flows write the token; everything
    else reads it through the session property.
    """

    def __init__(self, config: DualisConfig, transport: PortalTransport) -> None:
        self.config = config
        self.transport = transport
        self.session = Session()
        self.state = SessionState.LOGGED_OUT
        self._reauth_in_flight = False

    @property
    def token(self) -> str | None:
        return self.session.token

    @property
    def endpoints(self) -> PortalEndpoints:
        return self.session.endpoints

    @property
    def demo_mode(self) -> bool:
        return self.session.demo_mode

    @property
    def login_url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}{DLL_PATH}"

    def is_authenticated(self) -> bool:
        return self.session.token is not None or self.session.demo_mode

    async def login(self, username: str, password: str) -> Session:
        """Authenticate and return the established Session.

        Raises:
            AuthenticationError: Rejected credentials, no token in the
                redirect, or a broken redirect chain (RedirectLoopError).
            NetworkError: Transport failure or the login deadline passed.
        """
        logger.info("login_started", username=username)

        self.session.last_credentials = Credentials(username=username, password=password)

        if demo.is_demo_login(username, password):
            self.session.demo_mode = True
            self.session.authenticated = True
            self.state = SessionState.AUTHENTICATED
            logger.info("login_succeeded", demo=True)
            return self.session

        self.session.demo_mode = False
        await self._authenticate(username, password)
        return self.session

    async def _authenticate(self, username: str, password: str) -> None:
        previous_token = self.session.token
        previous_endpoints = self.session.endpoints
        if self.state != SessionState.RE_AUTHENTICATING:
            self.state = SessionState.AUTHENTICATING

        try:
            await asyncio.wait_for(
                self._login_flow(username, password),
                timeout=self.config.login_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            self._restore(previous_token, previous_endpoints)
            logger.warning("login_timeout", timeout=self.config.login_timeout_seconds)
            raise NetworkError("Login did not complete before the deadline") from e
        except PortalError as e:
            self._restore(previous_token, previous_endpoints)
            logger.error("login_failed", error=str(e), type=type(e).__name__)
            raise

        self.session.authenticated = True
        self.state = SessionState.AUTHENTICATED
        logger.info("login_succeeded", demo=False, token_suffix=self.session.token[-4:])

    def _restore(self, token: str | None, endpoints: PortalEndpoints) -> None:
        self.session.token = token
        self.session.endpoints = endpoints
        self.session.authenticated = token is not None
        self.state = SessionState.FAILED

    async def _login_flow(self, username: str, password: str) -> None:
        response = await self.transport.post_form(
            self.login_url, login_form(username, password), name="login"
        )
        if not response.is_success:
            raise AuthenticationError(f"Login failed with status {response.status_code}")

        refresh = response.headers.get("refresh")
        if refresh is None:
            raise AuthenticationError("No redirect directive in login response")

        redirect_url = make_absolute(self.config.base_url, extract_refresh_target(refresh))
        token = extract_token(redirect_url)
        if token is None:
            raise AuthenticationError("Could not extract session token from redirect")

        # Must be stored before any request that depends on it is built
        self._rotate_token(token)

        self.state = SessionState.FOLLOWING_REDIRECT
        home_html = await self.follow_redirects(redirect_url)
        self.session.endpoints = parse_home_page(home_html, self.session.token, self.config.base_url)

    def _rotate_token(self, token: str) -> None:
        if not is_valid_token(token):
            raise AuthenticationError("Malformed session token in redirect")
        if token != self.session.token:
            logger.debug("token_rotated", token_suffix=token[-4:])
        self.session.token = token

    async def follow_redirects(self, url: str) -> str:
        """Follow intermediate pages from url until the home page is reached.

        Returns:
            Home page HTML.

        Raises:
            RedirectLoopError: A URL was visited twice or the hop limit was hit.
            AuthenticationError: A page was neither intermediate nor home, or
                an intermediate page had no next URL.
        """
        visited: set[str] = set()
        max_hops = self.config.max_redirect_hops

        while True:
            if url in visited:
                raise RedirectLoopError(f"Redirect cycle at {url}", hops=len(visited))
            if len(visited) >= max_hops:
                raise RedirectLoopError(f"More than {max_hops} redirect hops", hops=len(visited))
            visited.add(url)

            response = await self.transport.get(url, name="follow_redirect")
            if not response.is_success:
                raise AuthenticationError(f"Redirect hop failed with status {response.status_code}")

            token = extract_token(url)
            if token is not None:
                self._rotate_token(token)

            html = response.text
            if is_redirect_page(html):
                next_url = extract_redirect_url(html, url)
                if next_url is None:
                    raise AuthenticationError("Intermediate page without a next URL")
                logger.debug("redirect_followed", hop=len(visited))
                url = next_url
            elif is_home_page(html):
                logger.info("home_page_reached", hops=len(visited))
                return html
            else:
                raise AuthenticationError("Unrecognized page in redirect chain")

    async def re_authenticate(self) -> None:
        """Replay the last credentials once; single-flight.

        Raises:
            ReAuthInProgressError: Another re-authentication is running.
            AuthenticationError: No stored credentials, or login failed. The
                previous session is kept either way.
            NetworkError: Transport failure during login.
        """
        if self._reauth_in_flight:
            logger.warning("reauth_busy")
            raise ReAuthInProgressError("Re-authentication already in progress")

        credentials = self.session.last_credentials
        if credentials is None:
            logger.error("reauth_without_credentials")
            raise AuthenticationError("No stored credentials for re-authentication")

        self._reauth_in_flight = True
        self.state = SessionState.RE_AUTHENTICATING
        logger.info("reauth_started")
        try:
            await self.login(credentials.username, credentials.password.get_secret_value())
        finally:
            self._reauth_in_flight = False
        logger.info("reauth_succeeded")

    async def logout(self) -> None:
        """End the portal session (best effort) and clear all local state."""
        logout_url = self.session.endpoints.logout
        if logout_url and self.session.token and not self.session.demo_mode:
            try:
                await self.transport.get(logout_url, name="logout")
            except PortalError as e:
                logger.warning("logout_request_failed", error=str(e))

        self.session = Session()
        self._reauth_in_flight = False
        self.transport.clear_cookies()
        self.state = SessionState.LOGGED_OUT
        logger.info("session_cleared")
