"""Client for the Nowon sports reservation portal (tabular JSON format)."""

import logging
from datetime import date

from ..auth import AuthenticatedContext, login_rejection_reason
from ..client import PortalClient
from ..config import config
from ..facilities import NOWON, Facility
from ..models import AuthError, Credentials, RawResponse, TransportError

logger = logging.getLogger(__name__)


class NowonClient(PortalClient):
    """Portal answering with a slot grid descriptor plus a reserved list."""

    portal = NOWON

    def __init__(self, base_url: str | None = None, **kwargs):
        kwargs.setdefault("verify", config.nowon_verify_ssl)
        super().__init__(base_url or config.nowon_base_url, **kwargs)
        self.static_headers.update({"X-Requested-With": "XMLHttpRequest"})

    async def authenticate(self, credentials: Credentials) -> AuthenticatedContext:
        """Login to the portal.

        Args:
            credentials: Login pair

        Returns:
            Context to pass to subsequent calls

        Raises:
            AuthError: If the login looks rejected or the request failed
        """
        url = f"{self.base_url}/member/loginAction"
        data = {"username": credentials.identifier, "password": credentials.secret}

        try:
            response = await self._make_request("POST", url, data=data)
        except TransportError as e:
            raise AuthError(f"Login request failed: {e.message}", e.details) from e

        reason = login_rejection_reason(response)
        if reason is not None:
            raise AuthError(reason)

        self.context = AuthenticatedContext(
            portal=self.portal, identifier=credentials.identifier
        )
        logger.info(f"Logged in to {self.portal}")
        return self.context

    async def fetch_day(
        self, context: AuthenticatedContext, facility: Facility, day: date
    ) -> RawResponse:
        """Fetch the slot grid and the reserved list for one facility and date.

        Both requests must succeed; the returned body holds both raw payloads
        under ``time_list`` and ``reserved``.
        """
        pick_date = day.isoformat()
        time_list = await self.call(
            context,
            "POST",
            f"{self.base_url}/sports/reserve_time_pick",
            data={"pickDate": pick_date, "cate2": facility.upstream_code},
        )
        reserved = await self.call(
            context,
            "POST",
            f"{self.base_url}/API",
            data={
                "kd": "A",
                "useDayBegin": pick_date,
                "cseq": facility.upstream_code,
            },
        )
        return RawResponse(
            status=time_list.status,
            body={"time_list": time_list.body, "reserved": reserved.body},
            headers=time_list.headers,
        )
