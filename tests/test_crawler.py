"""Tests for the crawl orchestrator."""

from datetime import date

import pytest

from court_crawler.auth import AuthenticatedContext
from court_crawler.circuit_breaker import CircuitBreaker, CircuitState
from court_crawler.client import PortalClient
from court_crawler.crawler import CrawlOrchestrator, CrawlState
from court_crawler.facilities import DOBONG, NOWON
from court_crawler.models import (
    AuthError,
    Credentials,
    CrawlJob,
    RawResponse,
    TransportError,
)
from court_crawler.rate_limit import FixedDelayRateLimiter, NoDelayRateLimiter

CREDENTIALS = Credentials(identifier="user", secret="secret")

TABULAR_BODY = {
    "time_list": {"useBeginHour": 8, "hourUnit": 1, "line": "2"},
    "reserved": {"list": [{"cseq": 18, "useTimeBegin": "8"}]},
}
MARKUP_BODY = {
    "play_name": [
        {
            "play_name": "1번 코트",
            "htmlx": '<ul><li><input type="checkbox" value="09:00"></li></ul>',
        }
    ]
}


class FakeClient(PortalClient):
    """Portal client answering from memory."""

    def __init__(self, portal, body, failures=(), fail_login=False):
        super().__init__(f"https://{portal}.example")
        self.portal = portal
        self.body = body
        self.failures = set(failures)
        self.fail_login = fail_login
        self.calls: list[tuple[str, str]] = []

    async def authenticate(self, credentials):
        if self.fail_login:
            raise AuthError("Login response contains 'fail'")
        self.context = AuthenticatedContext(
            portal=self.portal, identifier=credentials.identifier
        )
        return self.context

    async def fetch_day(self, context, facility, day):
        assert context is self.context
        key = (day.isoformat(), facility.facility_id)
        self.calls.append(key)
        if key in self.failures or "*" in self.failures:
            raise TransportError(code="HTTP_ERROR", message="HTTP 500")
        return RawResponse(status=200, body=self.body)


class RecordingLimiter:
    """Counts waits instead of sleeping."""

    def __init__(self):
        self.waits = 0

    async def wait(self):
        self.waits += 1


def job(facilities, start="2025-10-01", end="2025-10-02"):
    return CrawlJob(
        date_from=date.fromisoformat(start),
        date_to=date.fromisoformat(end),
        facility_ids=tuple(facilities),
        inter_request_delay_seconds=0,
    )


def breaker_factory(threshold=5):
    return lambda name: CircuitBreaker(name, failure_threshold=threshold, recovery_timeout=600)


@pytest.mark.asyncio
async def test_crawls_every_date_and_facility_in_order():
    """Dates outer, facilities inner, in the order given."""
    client = FakeClient(NOWON, TABULAR_BODY)
    limiter = RecordingLimiter()
    orchestrator = CrawlOrchestrator([client], rate_limiter=limiter)

    report = await orchestrator.run(job(["choan", "bulam"]), CREDENTIALS)

    assert report.state is CrawlState.DONE
    assert orchestrator.state is CrawlState.DONE
    assert [(r.date, r.facility_id) for r in report.results] == [
        ("2025-10-01", "choan"),
        ("2025-10-01", "bulam"),
        ("2025-10-02", "choan"),
        ("2025-10-02", "bulam"),
    ]
    assert all(r.status == "success" for r in report.results)
    assert report.results[1].courts[0].time_slots[0].available is False
    assert limiter.waits == 3
    assert report.breakers[NOWON].state is CircuitState.CLOSED


@pytest.mark.asyncio
async def test_transport_error_is_isolated():
    """A failure on one pair does not affect the other pairs."""
    client = FakeClient(NOWON, TABULAR_BODY, failures={("2025-10-01", "bulam")})
    orchestrator = CrawlOrchestrator([client], rate_limiter=NoDelayRateLimiter())

    report = await orchestrator.run(job(["bulam", "madeul"]), CREDENTIALS)

    assert report.state is CrawlState.DONE
    assert len(report.results) == 4
    failed = report.results[0]
    assert failed.status == "error"
    assert failed.courts == []
    assert "HTTP 500" in failed.error
    assert [r.status for r in report.results[1:]] == ["success"] * 3
    assert report.breakers[NOWON].consecutive_failures == 0


@pytest.mark.asyncio
async def test_failed_login_aborts_before_any_date():
    client = FakeClient(NOWON, TABULAR_BODY, fail_login=True)
    orchestrator = CrawlOrchestrator([client], rate_limiter=NoDelayRateLimiter())

    report = await orchestrator.run(job(["bulam"]), CREDENTIALS)

    assert report.state is CrawlState.ABORTED
    assert report.results == []
    assert "AUTH_ERROR" in report.error
    assert client.calls == []


@pytest.mark.asyncio
async def test_open_circuit_skips_calls_without_delay():
    """After the threshold the remaining dates are recorded without calls."""
    client = FakeClient(NOWON, TABULAR_BODY, failures={"*"})
    limiter = RecordingLimiter()
    orchestrator = CrawlOrchestrator(
        [client], rate_limiter=limiter, breaker_factory=breaker_factory(threshold=2)
    )

    report = await orchestrator.run(
        job(["bulam"], "2025-10-01", "2025-10-05"), CREDENTIALS
    )

    assert len(client.calls) == 2
    assert len(report.results) == 5
    assert all(r.status == "error" for r in report.results)
    assert all("CIRCUIT_OPEN" in r.error for r in report.results[2:])
    assert limiter.waits == 1
    assert report.breakers[NOWON].state is CircuitState.OPEN


@pytest.mark.asyncio
async def test_unparsable_body_is_not_a_breaker_failure():
    client = FakeClient(NOWON, "<html>session expired</html>")
    orchestrator = CrawlOrchestrator(
        [client],
        rate_limiter=NoDelayRateLimiter(),
        breaker_factory=breaker_factory(threshold=1),
    )

    report = await orchestrator.run(job(["bulam"]), CREDENTIALS)

    assert len(client.calls) == 2
    assert all(r.status == "error" for r in report.results)
    assert all("PARSE_ERROR" in r.error for r in report.results)
    assert report.breakers[NOWON].state is CircuitState.CLOSED


@pytest.mark.asyncio
async def test_breakers_are_per_portal():
    """A failing portal does not short-circuit the other one."""
    nowon = FakeClient(NOWON, TABULAR_BODY)
    dobong = FakeClient(DOBONG, MARKUP_BODY, failures={"*"})
    orchestrator = CrawlOrchestrator(
        [nowon, dobong],
        rate_limiter=NoDelayRateLimiter(),
        breaker_factory=breaker_factory(threshold=1),
    )

    report = await orchestrator.run(
        job(["dobong", "bulam"], "2025-10-01", "2025-10-03"), CREDENTIALS
    )

    assert len(dobong.calls) == 1
    assert len(nowon.calls) == 3
    statuses = [(r.facility_id, r.status) for r in report.results]
    assert statuses == [
        ("dobong", "error"),
        ("bulam", "success"),
        ("dobong", "error"),
        ("bulam", "success"),
        ("dobong", "error"),
        ("bulam", "success"),
    ]
    assert report.breakers[DOBONG].state is CircuitState.OPEN
    assert report.breakers[NOWON].state is CircuitState.CLOSED


@pytest.mark.asyncio
async def test_markup_portal_results():
    dobong = FakeClient(DOBONG, MARKUP_BODY)
    orchestrator = CrawlOrchestrator([dobong], rate_limiter=NoDelayRateLimiter())

    report = await orchestrator.run(job(["dobong"], "2025-10-01", "2025-10-01"), CREDENTIALS)

    result = report.results[0]
    assert result.courts[0].court_label == "1번 코트"
    assert [s.start for s in result.slots()] == ["08:00"]


@pytest.mark.asyncio
async def test_missing_client_is_rejected():
    orchestrator = CrawlOrchestrator([FakeClient(NOWON, TABULAR_BODY)])

    with pytest.raises(ValueError):
        await orchestrator.run(job(["dobong"]), CREDENTIALS)


@pytest.mark.asyncio
async def test_fixed_delay_limiter_sleeps_between_calls():
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    client = FakeClient(NOWON, TABULAR_BODY)
    orchestrator = CrawlOrchestrator(
        [client], rate_limiter=FixedDelayRateLimiter(0.5, sleep=fake_sleep)
    )

    await orchestrator.run(job(["bulam"], "2025-10-01", "2025-10-03"), CREDENTIALS)

    assert sleeps == [0.5, 0.5]
