"""Authentication context and login outcome heuristics."""

import logging
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .models import RawResponse

logger = logging.getLogger(__name__)

# Markers the tabular portal puts in a rejected login response.
LOGIN_FAILURE_MARKERS = ("로그인 실패", "fail")
LOGIN_ACCEPTED_STATUSES = frozenset({200, 302})


class AuthenticatedContext(BaseModel):
    """Proof that a portal session was established.

    The cookies themselves live in the portal client's HTTP session.
    """

    portal: str = Field(..., description="Portal the session belongs to")
    identifier: str = Field(..., description="Login identifier used")
    authenticated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


def login_rejection_reason(response: RawResponse) -> str | None:
    """Decide whether a login response means the login failed.

    The portal does not expose a reliable success signal, so this looks for
    failure markers in text bodies, falsy result flags or error fields in
    object bodies, and finally requires an accepted status code.

    Args:
        response: Response of the login request

    Returns:
        A reason string if the login was rejected, None if it looks accepted
    """
    body = response.body
    if isinstance(body, str):
        for marker in LOGIN_FAILURE_MARKERS:
            if marker in body:
                return f"Login response contains '{marker}'"
    elif isinstance(body, dict):
        message = body.get("message")
        if (
            body.get("success") is False
            or body.get("result") is False
            or body.get("error")
            or (isinstance(message, str) and "실패" in message)
        ):
            return f"Login rejected: {body}"

    if response.status not in LOGIN_ACCEPTED_STATUSES:
        return f"Unexpected login status {response.status}"
    return None
