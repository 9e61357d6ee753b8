"""Crawl orchestration over a date range and a list of facilities."""

import logging
from collections.abc import Callable, Iterable
from datetime import date
from enum import Enum

from pydantic import BaseModel, Field

from .auth import AuthenticatedContext
from .circuit_breaker import BreakerState, CircuitBreaker
from .client import PortalClient
from .config import config
from .facilities import Facility, get_facility, portals_for
from .models import (
    ApiErrorException,
    AuthError,
    CircuitOpenError,
    Credentials,
    CrawlJob,
    DailyResult,
    ParseError,
)
from .rate_limit import FixedDelayRateLimiter, RateLimiter
from .schedule_parser import ScheduleParser
from .utils import iter_dates

logger = logging.getLogger(__name__)


class CrawlState(str, Enum):
    """Lifecycle of a crawl run."""

    INIT = "init"
    AUTHENTICATING = "authenticating"
    RUNNING = "running"
    DONE = "done"
    ABORTED = "aborted"


class CrawlReport(BaseModel):
    """Outcome of a crawl run."""

    job: CrawlJob
    state: CrawlState
    results: list[DailyResult] = Field(default_factory=list)
    error: str | None = Field(None, description="Reason the run was aborted")
    breakers: dict[str, BreakerState] = Field(default_factory=dict)


def default_breaker(portal: str) -> CircuitBreaker:
    return CircuitBreaker(
        portal,
        failure_threshold=config.failure_threshold,
        recovery_timeout=config.recovery_timeout,
    )


class CrawlOrchestrator:
    """Walks a date range and collects one DailyResult per (date, facility).

    Calls are made one at a time. A failing pair is recorded as an error
    result and the walk continues; only a failed login stops the run.
    """

    def __init__(
        self,
        clients: Iterable[PortalClient],
        rate_limiter: RateLimiter | None = None,
        breaker_factory: Callable[[str], CircuitBreaker] = default_breaker,
    ):
        """Initialize the orchestrator.

        Args:
            clients: Portal clients, at most one per portal
            rate_limiter: Pacing policy; defaults to the job's fixed delay
            breaker_factory: Builds the circuit breaker of a portal
        """
        self.clients: dict[str, PortalClient] = {c.portal: c for c in clients}
        self.rate_limiter = rate_limiter
        self.breaker_factory = breaker_factory
        self.state = CrawlState.INIT

    async def run(self, job: CrawlJob, credentials: Credentials) -> CrawlReport:
        """Authenticate every needed portal, then crawl the whole job.

        Args:
            job: Date range and facilities to crawl
            credentials: Login pair for the portals

        Returns:
            Report with one result per (date, facility) pair, or an aborted
            report without results if a login failed

        Raises:
            ValueError: If no client is registered for a needed portal
        """
        portals = portals_for(job.facility_ids)
        missing = [p for p in portals if p not in self.clients]
        if missing:
            raise ValueError(f"No client configured for portals: {', '.join(missing)}")

        self.state = CrawlState.AUTHENTICATING
        contexts: dict[str, AuthenticatedContext] = {}
        for portal in portals:
            try:
                contexts[portal] = await self.clients[portal].authenticate(credentials)
            except AuthError as e:
                logger.error(f"Authentication to {portal} failed: {e.message}")
                self.state = CrawlState.ABORTED
                return CrawlReport(job=job, state=self.state, error=str(e))

        limiter = self.rate_limiter or FixedDelayRateLimiter(
            job.inter_request_delay_seconds
        )
        breakers = {portal: self.breaker_factory(portal) for portal in portals}
        results: list[DailyResult] = []
        call_made = False

        self.state = CrawlState.RUNNING
        logger.info(
            f"Crawling {job.date_from} to {job.date_to} for {', '.join(job.facility_ids)}"
        )
        for day in iter_dates(job.date_from, job.date_to):
            for facility_id in job.facility_ids:
                facility = get_facility(facility_id)
                breaker = breakers[facility.portal]

                if not breaker.is_available():
                    error = CircuitOpenError(facility.portal)
                    logger.warning(f"{day} {facility_id}: {error.message}")
                    results.append(
                        DailyResult.failed(day.isoformat(), facility_id, str(error))
                    )
                    continue

                # Pause between consecutive calls, never after the last one.
                if call_made:
                    await limiter.wait()
                call_made = True

                results.append(
                    await self._crawl_pair(
                        self.clients[facility.portal],
                        contexts[facility.portal],
                        breaker,
                        facility,
                        day,
                    )
                )

        self.state = CrawlState.DONE
        failed = sum(1 for r in results if r.status == "error")
        logger.info(f"Crawl finished: {len(results)} results, {failed} failed")
        return CrawlReport(
            job=job,
            state=self.state,
            results=results,
            breakers={name: b.snapshot() for name, b in breakers.items()},
        )

    async def _crawl_pair(
        self,
        client: PortalClient,
        context: AuthenticatedContext,
        breaker: CircuitBreaker,
        facility: Facility,
        day: date,
    ) -> DailyResult:
        """Fetch and normalize one (date, facility) pair, isolating failures."""
        day_str = day.isoformat()

        try:
            raw = await client.fetch_day(context, facility, day)
        except ApiErrorException as e:
            breaker.record_failure()
            logger.warning(f"{day_str} {facility.facility_id} failed: {e}")
            return DailyResult.failed(day_str, facility.facility_id, str(e))
        except Exception as e:
            breaker.record_failure()
            logger.exception(f"{day_str} {facility.facility_id} failed unexpectedly")
            return DailyResult.failed(
                day_str, facility.facility_id, f"Unexpected error: {e}"
            )

        # A delivered response counts as success even if it cannot be parsed.
        breaker.record_success()

        try:
            result = ScheduleParser.normalize(facility, day_str, raw.body)
        except ParseError as e:
            logger.warning(f"{day_str} {facility.facility_id} unparsable: {e}")
            return DailyResult.failed(day_str, facility.facility_id, str(e))
        except Exception as e:
            logger.exception(f"{day_str} {facility.facility_id} parsing failed")
            return DailyResult.failed(
                day_str, facility.facility_id, f"Unexpected error: {e}"
            )

        logger.info(
            f"{day_str} {facility.facility_id}: {len(result.slots())} slots, "
            f"{result.total_available_slots} available"
        )
        return result
