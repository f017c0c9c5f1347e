"""Client Portal gateway HTTP client.

This module provides a centralized client for the Interactive Brokers
Client Portal API served by the local gateway process. The gateway keeps its
own authenticated session (established through the browser login), so no
credentials are sent with requests. It serves a self-signed certificate, so
certificate validation is disabled for loopback hosts only.
"""

from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

import requests
import urllib3

from autoinvest.utils.config import AutoInvestSettings
from autoinvest.utils.exceptions import ConfigurationError, GatewayError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)

REDIRECT_STATUSES = (301, 302, 303, 307, 308)
LOOPBACK_HOSTS = ("localhost", "127.0.0.1", "::1")


@dataclass
class AuthStatus:
    """Brokerage session state reported by the gateway.

    Attributes:
        authenticated: Session is logged in
        competing: Another session competes for the same user
        connected: Gateway is connected to the backend
        message: Free-form status message
    """

    authenticated: bool
    competing: bool = False
    connected: bool = False
    message: str = ""

    @classmethod
    def from_response(cls, payload: Any) -> "AuthStatus":
        """Build from the auth status / session init response body."""
        if not isinstance(payload, dict):
            return cls(authenticated=False, message=str(payload))
        return cls(
            authenticated=bool(payload.get("authenticated", False)),
            competing=bool(payload.get("competing", False)),
            connected=bool(payload.get("connected", False)),
            message=str(payload.get("message") or ""),
        )


class GatewayClient:
    """HTTP client for the Client Portal gateway.

    This class handles:
    - URL construction against the configured base URL
    - Manual redirect following with a hop limit
    - JSON decoding with a raw-text fallback
    - Mapping of non-2xx responses and transport failures to GatewayError

    Example:
        >>> client = GatewayClient()
        >>> ledger = client.request("portfolio/U1234567/ledger")
        >>> status = client.get_auth_status()
    """

    USER_AGENT = "ibkr-autoinvest/1.0"

    def __init__(
        self,
        base_url: str = "https://localhost:5003/v1/api",
        timeout: float = 30.0,
        max_redirects: int = 5,
        session: Optional[requests.Session] = None,
    ):
        """Initialize gateway client.

        Args:
            base_url: Base URL of the Client Portal API
            timeout: Default per-request timeout in seconds
            max_redirects: Redirect hops followed before failing
            session: Optional pre-built requests session

        Raises:
            ConfigurationError: If the base URL is not an http(s) URL
        """
        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ConfigurationError(f"Invalid gateway base URL: {base_url}")

        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.session = session or requests.Session()
        self.verify_tls = _verify_for(self.base_url)

        if not self.verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        logger.info(
            "GatewayClient initialized (base_url: %s, verify_tls: %s)",
            self.base_url,
            self.verify_tls,
        )

    @classmethod
    def from_settings(cls, settings: AutoInvestSettings) -> "GatewayClient":
        """Create a GatewayClient from loaded settings."""
        return cls(
            base_url=settings.gateway_url,
            timeout=settings.request_timeout,
            max_redirects=settings.max_redirects,
        )

    def url_for(self, endpoint: str) -> str:
        """Resolve an endpoint path against the base URL."""
        return urljoin(self.base_url, endpoint.lstrip("/"))

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Any] = None,
        params: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Issue a request to the gateway.

        Args:
            endpoint: Path relative to the base URL (leading slash optional)
            method: HTTP method
            body: JSON-serializable request body
            params: Query string parameters
            timeout: Per-call timeout in seconds (defaults to client timeout)

        Returns:
            Decoded JSON, {} for an empty body, or the raw text when the body
            is not JSON

        Raises:
            GatewayError: On non-2xx responses (real status code) or transport
                failures, timeouts and redirect loops (status code 0)
        """
        method = method.upper()
        url = self.url_for(endpoint)
        timeout = timeout if timeout is not None else self.timeout

        for _ in range(self.max_redirects + 1):
            response = self._send(method, url, body, params, timeout, _verify_for(url))
            location = response.headers.get("Location")

            logger.debug(
                "Gateway %s %s -> %d%s",
                method,
                url,
                response.status_code,
                f" (redirect: {location})" if location else "",
            )

            if response.status_code in REDIRECT_STATUSES and location:
                url = urljoin(url, location)
                params = None  # the Location carries its own query string
                continue

            if 200 <= response.status_code < 300:
                return self._decode(response)

            raise GatewayError(response.status_code, response.text or "Unknown error")

        raise GatewayError(0, "Too many redirects")

    def _send(
        self,
        method: str,
        url: str,
        body: Optional[Any],
        params: Optional[dict[str, Any]],
        timeout: float,
        verify: bool,
    ) -> requests.Response:
        """Send one HTTP request without following redirects."""
        headers = {
            "User-Agent": self.USER_AGENT,
            "Accept": "*/*",
            "Content-Type": "application/json",
        }
        try:
            return self.session.request(
                method,
                url,
                json=body,
                params=params,
                headers=headers,
                timeout=timeout,
                verify=verify,
                allow_redirects=False,
            )
        except requests.Timeout as e:
            logger.warning("Gateway %s %s timed out after %.1fs", method, url, timeout)
            raise GatewayError(0, "Request timeout") from e
        except requests.RequestException as e:
            logger.warning("Gateway %s %s failed: %s", method, url, e)
            raise GatewayError(0, f"Network error: {e}") from e

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        """Decode a successful response body."""
        if not response.text:
            return {}
        try:
            return response.json()
        except ValueError:
            # some endpoints answer with plain strings
            return response.text

    def get_auth_status(self) -> AuthStatus:
        """Check whether the gateway session is authenticated.

        A 401, or a 302 the gateway issues towards its login page, means the
        session is not authenticated; this is reported, not raised.

        Returns:
            AuthStatus

        Raises:
            GatewayError: For any other failure
        """
        try:
            payload = self.request("iserver/auth/status", method="POST")
        except GatewayError as e:
            if e.status_code in (302, 401):
                logger.info("Gateway session is not authenticated (%d)", e.status_code)
                return AuthStatus(authenticated=False, message="Not authenticated")
            raise

        status = AuthStatus.from_response(payload)
        logger.debug("Auth status: %s", status)
        return status

    def init_brokerage_session(self) -> AuthStatus:
        """Open the brokerage session required by /iserver endpoints.

        Must be called once after the browser login completes.
        """
        payload = self.request(
            "iserver/auth/ssodh/init",
            method="POST",
            body={"publish": True, "compete": True},
        )
        logger.info("Brokerage session initialized")
        return AuthStatus.from_response(payload)

    def reauthenticate(self) -> Any:
        """Ask the gateway to re-authenticate the brokerage session."""
        return self.request("iserver/reauthenticate", method="POST")

    def tickle(self) -> Any:
        """Keep the session alive."""
        return self.request("tickle", method="POST")

    def check_health(self, timeout: float = 5.0) -> bool:
        """Check whether the gateway process is answering.

        Any HTTP answer below 500 (including 401 before login) means the
        gateway is up.

        Returns:
            True if the gateway answered, False otherwise
        """
        try:
            self.request("iserver/auth/status", method="POST", timeout=timeout)
            return True
        except GatewayError as e:
            return 0 < e.status_code < 500


def _verify_for(url: str) -> bool:
    """Certificates are checked for every host except loopback."""
    return urlparse(url).hostname not in LOOPBACK_HOSTS
