"""Tests for data models."""

from datetime import date

import pytest
from pydantic import ValidationError

from court_crawler.models import (
    ApiError,
    ApiErrorException,
    AuthError,
    CircuitOpenError,
    CourtAvailability,
    CrawlJob,
    DailyResult,
    ParseError,
    ReservedEntry,
    TimeSlot,
    TransportError,
)


def make_slot(start: str, available: bool) -> TimeSlot:
    return TimeSlot(
        facility_id="bulam",
        court_label="1코트",
        date="2025-10-15",
        start=start,
        end=start,
        available=available,
    )


class TestTimeSlot:
    """Test TimeSlot model."""

    def test_time_slot_is_immutable(self):
        slot = make_slot("08:00", True)

        with pytest.raises(ValidationError):
            slot.available = False  # type: ignore[misc]


class TestCourtAvailability:
    """Test CourtAvailability model."""

    def test_counts(self):
        court = CourtAvailability(
            court_label="1코트",
            time_slots=[make_slot("08:00", True), make_slot("09:00", False)],
        )

        assert court.available_count == 1
        assert court.total_count == 2
        assert court.has_availability is True

    def test_serialization_includes_counts(self):
        court = CourtAvailability(court_label="1코트")

        data = court.model_dump()
        assert data["court_label"] == "1코트"
        assert data["available_count"] == 0
        assert data["total_count"] == 0
        assert data["has_availability"] is False


class TestDailyResult:
    """Test DailyResult model."""

    def test_success_result(self):
        result = DailyResult(
            date="2025-10-15",
            facility_id="bulam",
            courts=[
                CourtAvailability(court_label="1코트", time_slots=[make_slot("08:00", True)]),
                CourtAvailability(court_label="2코트", time_slots=[make_slot("08:00", False)]),
            ],
        )

        assert result.status == "success"
        assert result.formatted_date == "2025년 10월 15일"
        assert result.total_available_slots == 1
        assert result.has_availability is True
        assert len(result.slots()) == 2

    def test_failed_placeholder(self):
        result = DailyResult.failed("2025-10-15", "bulam", "[HTTP_ERROR] HTTP 500")

        assert result.status == "error"
        assert result.error == "[HTTP_ERROR] HTTP 500"
        assert result.courts == []
        assert result.has_availability is False

    def test_error_result_cannot_carry_courts(self):
        with pytest.raises(ValidationError):
            DailyResult(
                date="2025-10-15",
                facility_id="bulam",
                status="error",
                courts=[CourtAvailability(court_label="1코트")],
            )


class TestCrawlJob:
    """Test CrawlJob model."""

    def test_for_month(self):
        job = CrawlJob.for_month(2024, 2, ["bulam", "dobong"], 1.0)

        assert job.date_from == date(2024, 2, 1)
        assert job.date_to == date(2024, 2, 29)
        assert job.facility_ids == ("bulam", "dobong")
        assert job.inter_request_delay_seconds == 1.0

    def test_job_is_immutable(self):
        job = CrawlJob.for_month(2025, 10, ["bulam"])

        with pytest.raises(ValidationError):
            job.inter_request_delay_seconds = 0  # type: ignore[misc]

    def test_rejects_reversed_range(self):
        with pytest.raises(ValidationError):
            CrawlJob(
                date_from=date(2025, 10, 2),
                date_to=date(2025, 10, 1),
                facility_ids=("bulam",),
            )

    def test_rejects_unknown_facility(self):
        with pytest.raises(ValidationError):
            CrawlJob.for_month(2025, 10, ["jamsil"])

    def test_rejects_empty_facilities(self):
        with pytest.raises(ValidationError):
            CrawlJob.for_month(2025, 10, [])

    def test_rejects_negative_delay(self):
        with pytest.raises(ValidationError):
            CrawlJob.for_month(2025, 10, ["bulam"], -1)


class TestReservedEntry:
    """Test ReservedEntry model."""

    def test_numeric_fields_become_strings(self):
        entry = ReservedEntry.model_validate({"cseq": 21, "useTimeBegin": 9})

        assert entry.court_sequence_id == "21"
        assert entry.begin_time == "9"

    def test_missing_fields(self):
        entry = ReservedEntry.model_validate({})

        assert entry.court_sequence_id is None
        assert entry.begin_time is None


class TestApiError:
    """Test ApiError model and exception taxonomy."""

    def test_api_error_creation(self):
        error = ApiError(
            code="TEST_ERROR", message="Test error message", details={"field": "value"}
        )

        assert error.code == "TEST_ERROR"
        assert error.message == "Test error message"
        assert error.details == {"field": "value"}

    def test_api_error_without_details(self):
        error = ApiErrorException(code="SIMPLE_ERROR", message="Simple error message")

        assert error.code == "SIMPLE_ERROR"
        assert error.message == "Simple error message"
        assert error.details is None
        assert str(error) == "[SIMPLE_ERROR] Simple error message"

    def test_subclass_codes(self):
        assert AuthError("bad login").code == "AUTH_ERROR"
        assert ParseError("bad body").code == "PARSE_ERROR"
        assert TransportError(code="HTTP_ERROR", message="HTTP 500").code == "HTTP_ERROR"

        circuit = CircuitOpenError("nowon")
        assert circuit.code == "CIRCUIT_OPEN"
        assert circuit.details == {"upstream": "nowon"}
        assert isinstance(circuit, ApiErrorException)
