"""Aggregation and export of crawl results."""

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any

from .config import config
from .facilities import FACILITIES, Facility
from .models import DailyResult, TimeSlot

logger = logging.getLogger(__name__)

STATUS_AVAILABLE = "예약가능"
STATUS_UNAVAILABLE = "예약불가"

FULL_COLUMNS = ["date", "court", "start_time", "end_time", "status"]
AVAILABLE_COLUMNS = ["date", "court", "start_time", "end_time"]


class ResultExporter:
    """Merges DailyResults into sorted rows and writes them out."""

    def __init__(self, facilities: dict[str, Facility] | None = None):
        self.facilities = facilities if facilities is not None else FACILITIES

    def display_name(self, facility_id: str) -> str:
        facility = self.facilities.get(facility_id)
        return facility.display_name if facility else facility_id

    def sorted_slots(self, results: list[DailyResult]) -> list[TimeSlot]:
        """Collect the slots of all successful results in canonical order.

        Order is date, facility display name, court label, then start time,
        all compared as strings. Equal keys keep their input order.
        """
        slots = [slot for result in results for slot in result.slots()]
        return sorted(
            slots,
            key=lambda s: (s.date, self.display_name(s.facility_id), s.court_label, s.start),
        )

    def _row(self, slot: TimeSlot) -> dict[str, str]:
        return {
            "date": slot.date,
            "court": f"{self.display_name(slot.facility_id)} {slot.court_label}",
            "start_time": slot.start,
            "end_time": slot.end,
        }

    def full_rows(self, results: list[DailyResult]) -> list[dict[str, str]]:
        """Rows for every slot with a status column."""
        rows = []
        for slot in self.sorted_slots(results):
            row = self._row(slot)
            row["status"] = STATUS_AVAILABLE if slot.available else STATUS_UNAVAILABLE
            rows.append(row)
        return rows

    def available_rows(self, results: list[DailyResult]) -> list[dict[str, str]]:
        """Rows for bookable slots only, without a status column."""
        return [self._row(slot) for slot in self.sorted_slots(results) if slot.available]

    @staticmethod
    def to_csv(rows: list[dict[str, str]], columns: list[str]) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=columns, lineterminator="\n")
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()

    @staticmethod
    def to_json(results: list[DailyResult]) -> str:
        return json.dumps(
            [result.model_dump() for result in results], indent=2, ensure_ascii=False
        )

    def summary(self, results: list[DailyResult]) -> dict[str, Any]:
        """Count slots and failed pairs; failed pairs are not counted as slots."""
        slots = [slot for result in results for slot in result.slots()]
        available = sum(1 for slot in slots if slot.available)
        failed = [r for r in results if r.status == "error"]
        return {
            "total_slots": len(slots),
            "available_slots": available,
            "unavailable_slots": len(slots) - available,
            "failed_pairs": len(failed),
            "failed": [{"date": r.date, "facility_id": r.facility_id} for r in failed],
        }

    def save(
        self,
        results: list[DailyResult],
        output_dir: str | Path | None = None,
        prefix: str = "court",
    ) -> dict[str, Path]:
        """Write the JSON dump and both CSV views.

        Args:
            results: Results of a crawl run
            output_dir: Target directory, created if absent
            prefix: File name prefix

        Returns:
            Mapping of view name to written path
        """
        directory = Path(output_dir or config.output_dir)
        directory.mkdir(parents=True, exist_ok=True)

        paths = {
            "json": directory / f"{prefix}_results.json",
            "all": directory / f"{prefix}_all.csv",
            "available": directory / f"{prefix}_available.csv",
        }
        contents = {
            "json": self.to_json(results),
            "all": self.to_csv(self.full_rows(results), FULL_COLUMNS),
            "available": self.to_csv(self.available_rows(results), AVAILABLE_COLUMNS),
        }
        for name, path in paths.items():
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(contents[name])
            logger.info(f"Saved {name} results to {path}")

        return paths
