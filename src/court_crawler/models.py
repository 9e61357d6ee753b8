"""Data models for the court availability crawler."""

from datetime import date
from enum import Enum
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


class ResponseFormat(str, Enum):
    """Shape of the availability payload returned by an upstream portal."""

    TABULAR = "tabular"
    EMBEDDED_MARKUP = "embedded_markup"


class TimeSlot(BaseModel):
    """One bookable interval of a court on a given date."""

    model_config = ConfigDict(frozen=True)

    facility_id: str = Field(..., description="Facility identifier")
    court_label: str = Field(..., description="Court display label")
    date: str = Field(..., description="Date in YYYY-MM-DD format")
    start: str = Field(..., description="Start time in HH:MM format")
    end: str = Field(..., description="End time in HH:MM format")
    available: bool = Field(..., description="True if the slot can be booked")


class CourtAvailability(BaseModel):
    """Ordered time slots of a single court for one day."""

    court_label: str = Field(..., description="Court name or number")
    court_code: str = Field("", description="Upstream court code")
    place_code: str = Field("", description="Upstream place code")
    event_code: str = Field("", description="Upstream event code")
    time_slots: list[TimeSlot] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def available_count(self) -> int:
        return sum(1 for slot in self.time_slots if slot.available)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_count(self) -> int:
        return len(self.time_slots)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_availability(self) -> bool:
        return self.available_count > 0


class DailyResult(BaseModel):
    """Availability of one facility on one date.

    A result with ``status == "error"`` always has an empty court list; it
    marks a skipped date, not a fully booked one.
    """

    date: str = Field(..., description="Date in YYYY-MM-DD format")
    facility_id: str = Field(..., description="Facility identifier")
    status: Literal["success", "error"] = "success"
    error: str | None = Field(None, description="Failure reason for error results")
    courts: list[CourtAvailability] = Field(default_factory=list)

    @model_validator(mode="after")
    def _error_has_no_courts(self) -> "DailyResult":
        if self.status == "error" and self.courts:
            raise ValueError("error results must not carry courts")
        return self

    @classmethod
    def failed(cls, day: str, facility_id: str, reason: str) -> "DailyResult":
        """Build the placeholder result for a skipped (date, facility) pair."""
        return cls(date=day, facility_id=facility_id, status="error", error=reason)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def formatted_date(self) -> str:
        year, month, day = self.date.split("-")
        return f"{year}년 {month}월 {day}일"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_available_slots(self) -> int:
        return sum(court.available_count for court in self.courts)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_availability(self) -> bool:
        return self.total_available_slots > 0

    def slots(self) -> list[TimeSlot]:
        """Flatten all court slots in court order."""
        return [slot for court in self.courts for slot in court.time_slots]


class CrawlJob(BaseModel):
    """Input of a crawl run. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    date_from: date = Field(..., description="First date, inclusive")
    date_to: date = Field(..., description="Last date, inclusive")
    facility_ids: tuple[str, ...] = Field(..., description="Facilities in crawl order")
    inter_request_delay_seconds: float = Field(0.5, ge=0)

    @field_validator("facility_ids")
    @classmethod
    def _known_facilities(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        from .facilities import FACILITIES

        if not value:
            raise ValueError("at least one facility is required")
        unknown = [fid for fid in value if fid not in FACILITIES]
        if unknown:
            raise ValueError(f"unknown facility ids: {', '.join(unknown)}")
        return value

    @model_validator(mode="after")
    def _ordered_range(self) -> "CrawlJob":
        if self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self

    @classmethod
    def for_month(
        cls,
        year: int,
        month: int,
        facility_ids: list[str] | tuple[str, ...],
        inter_request_delay_seconds: float = 0.5,
    ) -> "CrawlJob":
        """Build a job covering every calendar day of the given month."""
        from .utils import month_bounds

        first, last = month_bounds(year, month)
        return cls(
            date_from=first,
            date_to=last,
            facility_ids=tuple(facility_ids),
            inter_request_delay_seconds=inter_request_delay_seconds,
        )


class ScheduleDescriptor(BaseModel):
    """Slot grid advertised by the tabular portal for one date."""

    model_config = ConfigDict(populate_by_name=True)

    start_hour: float = Field(..., alias="useBeginHour")
    hour_unit: float = Field(..., alias="hourUnit", gt=0)
    slot_count: int = Field(..., alias="line", ge=0)


class ReservedEntry(BaseModel):
    """One already-booked interval from the tabular portal's reserved list."""

    model_config = ConfigDict(populate_by_name=True)

    court_sequence_id: str | None = Field(None, alias="cseq")
    begin_time: str | None = Field(None, alias="useTimeBegin")

    @field_validator("court_sequence_id", "begin_time", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class RawResponse(BaseModel):
    """Undecoded result of a gateway call."""

    status: int = Field(..., description="HTTP status code")
    body: Any = Field(None, description="Decoded JSON, text or bytes")
    headers: dict[str, str] = Field(default_factory=dict)


class Credentials(BaseModel):
    """Portal login pair."""

    identifier: str = Field(..., min_length=1)
    secret: str = Field(..., min_length=1, repr=False)


class ApiError(BaseModel):
    """Represents an API error response."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: dict | None = Field(None, description="Additional error details")


class ApiErrorException(Exception):
    """Exception class for API errors that uses ApiError model for data."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        """Initialize the exception with error details."""
        super().__init__(f"[{code}] {message}")
        self.error = ApiError(code=code, message=message, details=details)
        self.code = code
        self.message = message
        self.details = details


class AuthError(ApiErrorException):
    """Login was rejected. Fatal for the whole run."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(code="AUTH_ERROR", message=message, details=details)


class TransportError(ApiErrorException):
    """A single upstream call failed (network error, timeout, bad status)."""


class ParseError(ApiErrorException):
    """A response arrived but its body could not be interpreted."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(code="PARSE_ERROR", message=message, details=details)


class CircuitOpenError(ApiErrorException):
    """Synthetic failure produced when the circuit breaker denies a call."""

    def __init__(self, upstream: str):
        super().__init__(
            code="CIRCUIT_OPEN",
            message=f"Circuit open for {upstream}, call skipped",
            details={"upstream": upstream},
        )
