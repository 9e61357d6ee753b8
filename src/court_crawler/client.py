"""HTTP session gateway shared by the portal clients."""

import logging
from datetime import date
from typing import Any

import httpx

from .auth import AuthenticatedContext
from .config import config
from .facilities import Facility
from .models import AuthError, Credentials, RawResponse, TransportError
from .utils import truncate

logger = logging.getLogger(__name__)


class PortalClient:
    """Cookie-keeping HTTP client for one reservation portal.

    Subclasses implement ``authenticate`` and ``fetch_day``. Every request
    after login goes through ``call``, which refuses to run without the
    context returned by ``authenticate``.
    """

    portal: str = ""

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        verify: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP client.

        Args:
            base_url: Portal root URL
            timeout: Per-request timeout in seconds
            verify: Whether to verify TLS certificates
            transport: Custom httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else config.request_timeout
        self.verify = verify if verify is not None else config.verify_ssl
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.context: AuthenticatedContext | None = None
        self.static_headers = {
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
            "Accept": "application/json, text/javascript, */*; q=0.01",
            "Accept-Language": "ko-KR,ko;q=0.9",
        }

    async def __aenter__(self) -> "PortalClient":
        self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def open(self) -> httpx.AsyncClient:
        """Create the underlying session; cookies persist until close."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                verify=self.verify,
                transport=self._transport,
                headers=self.static_headers,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.context = None

    async def authenticate(self, credentials: Credentials) -> AuthenticatedContext:
        """Log in and return the context required by ``call``.

        Raises:
            AuthError: If the portal rejects the login
        """
        raise NotImplementedError

    async def fetch_day(
        self, context: AuthenticatedContext, facility: Facility, day: date
    ) -> RawResponse:
        """Fetch the raw availability payload of one facility on one date.

        Raises:
            TransportError: If any request of the fetch fails
        """
        raise NotImplementedError

    async def call(
        self,
        context: AuthenticatedContext,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> RawResponse:
        """Make an authenticated request.

        Raises:
            AuthError: If the context does not belong to this client's session
            TransportError: On network failure or a non-accepted status
        """
        if self.context is None or context is not self.context:
            raise AuthError(f"No authenticated {self.portal} session available")
        return await self._make_request(method, url, headers=headers, data=data, params=params)

    async def _make_request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> RawResponse:
        """Make HTTP request

        Args:
            method: HTTP method
            url: Request URL
            headers: Extra request headers
            data: Form body
            params: URL parameters

        Returns:
            RawResponse with the decoded body
        """
        client = self.open()
        try:
            response = await client.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                data=data,
            )
        except httpx.RequestError as e:
            raise TransportError(
                code="REQUEST_FAILED",
                message=f"{method} request failed for {url}",
                details={"error": str(e) or type(e).__name__},
            ) from e

        if not 200 <= response.status_code < 303:
            raise TransportError(
                code="HTTP_ERROR",
                message=f"HTTP {response.status_code}",
                details={"url": url, "response": truncate(response.text)},
            )

        return RawResponse(
            status=response.status_code,
            body=self._decode_body(response),
            headers=dict(response.headers),
        )

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "").lower()
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                return response.text
        if "text/" in content_type or not content_type:
            return response.text
        return response.content
