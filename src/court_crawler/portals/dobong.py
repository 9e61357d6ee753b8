"""Client for the Dobong facility rental portal (JSON with embedded markup)."""

import logging
from datetime import date

from ..auth import AuthenticatedContext
from ..client import PortalClient
from ..config import config
from ..facilities import DOBONG, Facility
from ..models import AuthError, Credentials, RawResponse, TransportError
from ..utils import compact_date

logger = logging.getLogger(__name__)


class DobongClient(PortalClient):
    """Portal answering with per-court blocks of checkbox markup."""

    portal = DOBONG

    def __init__(
        self, base_url: str | None = None, login_url: str | None = None, **kwargs
    ):
        super().__init__(base_url or config.dobong_base_url, **kwargs)
        self.login_url = login_url or config.dobong_login_url
        self.ajax_url = f"{self.base_url}/rent/ajax.day.rent.list_re.php"
        self.index_url = (
            f"{self.base_url}/rent/index.php?c_id=05&page_info=index&n_type=rent&c_ox=0"
        )

    async def authenticate(self, credentials: Credentials) -> AuthenticatedContext:
        """Login through the SSO page, then open the rental index.

        Success means every step answered with an accepted status.

        Raises:
            AuthError: If any login step fails
        """
        payload = {
            "returl": self.index_url,
            "user_id": credentials.identifier,
            "user_pass": credentials.secret,
        }
        try:
            await self._make_request("GET", self.login_url)
            await self._make_request(
                "POST",
                self.login_url,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Referer": self.login_url,
                },
                data=payload,
            )
            await self._make_request("GET", self.index_url)
        except TransportError as e:
            raise AuthError(f"Login failed: {e.message}", e.details) from e

        self.context = AuthenticatedContext(
            portal=self.portal, identifier=credentials.identifier
        )
        logger.info(f"Logged in to {self.portal}")
        return self.context

    async def fetch_day(
        self, context: AuthenticatedContext, facility: Facility, day: date
    ) -> RawResponse:
        """Fetch the day rental list; the index page is reloaded first."""
        await self.call(context, "GET", self.index_url)
        return await self.call(
            context,
            "POST",
            self.ajax_url,
            headers={
                "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
                "X-Requested-With": "XMLHttpRequest",
                "Referer": self.index_url,
            },
            data={
                "c_id": facility.upstream_code,
                "rdate": compact_date(day),
                "rent_open_start_day": "23",
            },
        )
