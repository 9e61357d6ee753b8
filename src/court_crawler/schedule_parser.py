"""Schedule parsing utilities for the court availability crawler."""

import json
import logging
import re
from typing import Any

from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from .facilities import Facility
from .models import (
    CourtAvailability,
    DailyResult,
    ParseError,
    ReservedEntry,
    ResponseFormat,
    ScheduleDescriptor,
    TimeSlot,
)
from .utils import decode_json_body, format_hour, shift_time, truncate

logger = logging.getLogger(__name__)

control_time_regex = re.compile(r"(\d{1,2}):(\d{2})")
label_range_regex = re.compile(r"(\d{1,2}):(\d{2})\s*~\s*(\d{1,2}):(\d{2})")
bare_hour_regex = re.compile(r"^\d+$")

# The markup portal advertises a 06:00 control that cannot be booked.
PLACEHOLDER_HOUR = 6
# From this hour on, displayed hours are one ahead of the real slot start.
SHIFTED_FROM_HOUR = 7


class ScheduleParser:
    """Turns portal responses into DailyResult / TimeSlot records."""

    @staticmethod
    def normalize(facility: Facility, day: str, body: Any) -> DailyResult:
        """Normalize a raw response body for one facility and date.

        Args:
            facility: Facility the response belongs to
            day: Date in YYYY-MM-DD format
            body: Response body as returned by the portal client

        Returns:
            DailyResult with status "success"

        Raises:
            ParseError: If the body as a whole cannot be interpreted
        """
        if facility.response_format is ResponseFormat.TABULAR:
            return ScheduleParser.parse_tabular_payload(facility, day, body)
        if facility.response_format is ResponseFormat.EMBEDDED_MARKUP:
            return ScheduleParser.parse_markup_payload(facility, day, body)
        raise ParseError(f"Unsupported response format: {facility.response_format}")

    # Tabular format

    @staticmethod
    def parse_tabular_payload(facility: Facility, day: str, body: Any) -> DailyResult:
        """Parse the combined time-list / reserved-list payload.

        The body is a dict with the raw ``time_list`` and ``reserved``
        responses. A malformed descriptor yields courts without slots.
        """
        data = ScheduleParser._decode(body)
        if not isinstance(data, dict):
            raise ParseError(
                "Tabular payload is not an object", {"body": truncate(body)}
            )

        descriptor = None
        try:
            time_list = decode_json_body(data.get("time_list"))
            descriptor = ScheduleDescriptor.model_validate(time_list)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Malformed schedule descriptor for {facility.facility_id} {day}: {e}")

        entries: list[ReservedEntry] = []
        try:
            reserved = decode_json_body(data.get("reserved"))
            if isinstance(reserved, dict):
                entries = ScheduleParser.parse_reserved_entries(reserved.get("list"))
        except ValueError as e:
            logger.warning(f"Malformed reserved list for {facility.facility_id} {day}: {e}")

        return ScheduleParser.parse_tabular(facility, day, descriptor, entries)

    @staticmethod
    def parse_reserved_entries(items: Any) -> list[ReservedEntry]:
        """Validate reserved list items, skipping the malformed ones."""
        if not isinstance(items, list):
            return []

        entries = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                entries.append(ReservedEntry.model_validate(item))
            except ValidationError:
                logger.debug(f"Skipping malformed reserved entry: {item!r}")
        return entries

    @staticmethod
    def normalize_begin_time(value: str | None) -> str:
        """Normalize a reserved begin time; bare hours like "8" become "08:00"."""
        if not value:
            return "00:00"
        if bare_hour_regex.match(value):
            return f"{int(value):02d}:00"
        return value

    @staticmethod
    def reserved_key(sequence_id: str, start: str) -> str:
        return f"{sequence_id},{start}"

    @staticmethod
    def build_reserved_keys(entries: list[ReservedEntry]) -> set[str]:
        """Build the set of "{court_sequence_id},{begin_time}" keys."""
        keys = set()
        for entry in entries:
            if entry.court_sequence_id is None:
                continue
            begin = ScheduleParser.normalize_begin_time(entry.begin_time)
            keys.add(ScheduleParser.reserved_key(entry.court_sequence_id, begin))
        return keys

    @staticmethod
    def parse_tabular(
        facility: Facility,
        day: str,
        descriptor: ScheduleDescriptor | None,
        reserved: list[ReservedEntry],
    ) -> DailyResult:
        """Generate the slot grid of every roster court and mark reserved slots.

        Args:
            facility: Facility with a court roster
            day: Date in YYYY-MM-DD format
            descriptor: Slot grid, or None when it could not be read
            reserved: Already-booked entries for this facility and date

        Returns:
            DailyResult with one CourtAvailability per roster court
        """
        reserved_keys = ScheduleParser.build_reserved_keys(reserved)
        slots: dict[str, list[TimeSlot]] = {c.sequence_id: [] for c in facility.courts}

        if descriptor is not None:
            # The accumulator keeps fractional hours; only the labels are floored.
            start = descriptor.start_hour
            seen: set[str] = set()
            for _ in range(descriptor.slot_count):
                end = start + descriptor.hour_unit
                start_txt = format_hour(start)
                end_txt = format_hour(end)

                # Sub-hour units floor to the same label; keep the first one.
                if start_txt in seen:
                    start += descriptor.hour_unit
                    continue
                seen.add(start_txt)

                for court in facility.courts:
                    key = ScheduleParser.reserved_key(court.sequence_id, start_txt)
                    slots[court.sequence_id].append(
                        TimeSlot(
                            facility_id=facility.facility_id,
                            court_label=facility.court_label(court),
                            date=day,
                            start=start_txt,
                            end=end_txt,
                            available=key not in reserved_keys,
                        )
                    )

                start += descriptor.hour_unit

        courts = [
            CourtAvailability(
                court_label=facility.court_label(court),
                court_code=court.sequence_id,
                time_slots=slots[court.sequence_id],
            )
            for court in facility.courts
        ]
        return DailyResult(date=day, facility_id=facility.facility_id, courts=courts)

    # Embedded markup format

    @staticmethod
    def parse_markup_payload(facility: Facility, day: str, body: Any) -> DailyResult:
        """Parse a JSON response whose court blocks embed HTML fragments."""
        data = ScheduleParser._decode(body)
        if not isinstance(data, dict):
            raise ParseError("Markup payload is not an object", {"body": truncate(body)})

        play_data = data.get("play_name")
        if isinstance(play_data, str):
            try:
                play_data = json.loads(play_data)
            except ValueError as e:
                logger.warning(f"Failed to parse court blocks for {day}: {e}")
                play_data = []
        if not isinstance(play_data, list):
            play_data = []

        courts = [
            ScheduleParser._parse_court_block(facility, day, index, block)
            for index, block in enumerate(play_data)
        ]
        return DailyResult(date=day, facility_id=facility.facility_id, courts=courts)

    @staticmethod
    def _parse_court_block(
        facility: Facility, day: str, index: int, block: Any
    ) -> CourtAvailability:
        default_label = f"코트{index + 1}"
        if not isinstance(block, dict):
            logger.warning(f"Court block {index} for {day} is not an object")
            return CourtAvailability(court_label=default_label)

        label = str(block.get("play_name") or default_label)
        court = CourtAvailability(
            court_label=label,
            court_code=str(block.get("play_code") or ""),
            place_code=str(block.get("place_code") or ""),
            event_code=str(block.get("event_code") or ""),
        )

        html = block.get("htmlx")
        if not html:
            return court
        try:
            court.time_slots = ScheduleParser.parse_time_slots(
                str(html), facility.facility_id, label, day
            )
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Failed to parse slots of court '{label}' on {day}: {e}")
        return court

    @staticmethod
    def parse_time_slots(
        html: str, facility_id: str, court_label: str, day: str
    ) -> list[TimeSlot]:
        """
        Parses an HTML fragment with one checkbox per time slot.

        The slot time comes from the checkbox value ("HH:MM") or, failing
        that, from the "HH:MM ~ HH:MM" label in the enclosing list. The
        06:00 placeholder is dropped and later hours are shifted back by one.
        A disabled checkbox marks a slot that cannot be booked.

        Args:
            html: Markup fragment of one court
            facility_id: Facility identifier for the produced slots
            court_label: Court label for the produced slots
            day: Date in YYYY-MM-DD format

        Returns:
            Slots in document order, at most one per start time
        """
        soup = BeautifulSoup(html, "html.parser")
        slots: list[TimeSlot] = []
        seen: set[str] = set()

        for control in soup.select('input[type="checkbox"]'):
            times = ScheduleParser._control_times(control)
            if times is None:
                continue

            start, end = times
            if start in seen:
                logger.debug(f"Duplicate slot {start} for {court_label} on {day}")
                continue
            seen.add(start)

            slots.append(
                TimeSlot(
                    facility_id=facility_id,
                    court_label=court_label,
                    date=day,
                    start=start,
                    end=end,
                    available=not control.has_attr("disabled"),
                )
            )

        return slots

    @staticmethod
    def _control_times(control: Tag) -> tuple[str, str] | None:
        """Return corrected (start, end) of a slot control, or None to drop it."""
        value = str(control.get("value") or "")
        match = control_time_regex.search(value)
        if match:
            hour = ScheduleParser.correct_hour(int(match.group(1)), match.group(2))
            if hour is None:
                return None
            start = f"{hour:02d}:{match.group(2)}"
            return start, shift_time(start, 1)

        label = ScheduleParser._sibling_label(control)
        match = label_range_regex.search(label)
        if not match:
            return None
        hour = ScheduleParser.correct_hour(int(match.group(1)), match.group(2))
        if hour is None:
            return None
        end_hour = int(match.group(3))
        if end_hour >= SHIFTED_FROM_HOUR:
            end_hour -= 1
        return f"{hour:02d}:{match.group(2)}", f"{end_hour:02d}:{match.group(4)}"

    @staticmethod
    def _sibling_label(control: Tag) -> str:
        container = control.find_parent("ul")
        if container is None:
            return ""
        label = container.find("li", class_="chk_t")
        if label is None:
            return ""
        return label.get_text().strip()

    @staticmethod
    def correct_hour(hour: int, minute: str) -> int | None:
        """Map a displayed hour to the real slot start hour.

        Returns:
            The corrected hour, or None for the non-bookable 06:00 control
        """
        if hour == PLACEHOLDER_HOUR and minute == "00":
            return None
        if hour >= SHIFTED_FROM_HOUR:
            return hour - 1
        return hour

    @staticmethod
    def _decode(body: Any) -> Any:
        try:
            return decode_json_body(body)
        except ValueError as e:
            raise ParseError(
                "Response body is not valid JSON", {"body": truncate(body)}
            ) from e
