"""Fixed facility and court roster for the supported portals."""

from pydantic import BaseModel, Field

from .models import ResponseFormat

NOWON = "nowon"
DOBONG = "dobong"


class CourtSpec(BaseModel):
    """A court as known to the tabular portal."""

    label: str = Field(..., description="Court display label, e.g. '1코트'")
    sequence_id: str = Field(..., description="Upstream court sequence id (cseq)")


class Facility(BaseModel):
    """A venue offering bookable courts."""

    facility_id: str = Field(..., description="Stable facility identifier")
    display_name: str = Field(..., description="Name used in exported rows")
    portal: str = Field(..., description="Upstream portal serving this facility")
    response_format: ResponseFormat
    upstream_code: str = Field(..., description="Facility code sent to the portal")
    label_prefix: str = Field("", description="Prefix for court labels")
    courts: list[CourtSpec] = Field(
        default_factory=list,
        description="Court roster; empty when courts come from the response",
    )

    def court_label(self, court: CourtSpec) -> str:
        return f"{self.label_prefix}{court.label}"


def _roster(count: int, first_sequence_id: int) -> list[CourtSpec]:
    return [
        CourtSpec(label=f"{n}코트", sequence_id=str(first_sequence_id + n - 1))
        for n in range(1, count + 1)
    ]


FACILITIES: dict[str, Facility] = {
    "bulam": Facility(
        facility_id="bulam",
        display_name="불암산",
        portal=NOWON,
        response_format=ResponseFormat.TABULAR,
        upstream_code="15",
        courts=_roster(3, 18),
    ),
    "madeul": Facility(
        facility_id="madeul",
        display_name="마들",
        portal=NOWON,
        response_format=ResponseFormat.TABULAR,
        upstream_code="16",
        label_prefix="1",
        courts=_roster(9, 21),
    ),
    "choan": Facility(
        facility_id="choan",
        display_name="초안산",
        portal=NOWON,
        response_format=ResponseFormat.TABULAR,
        upstream_code="17",
        label_prefix="2",
        courts=_roster(4, 30),
    ),
    "dobong": Facility(
        facility_id="dobong",
        display_name="도봉",
        portal=DOBONG,
        response_format=ResponseFormat.EMBEDDED_MARKUP,
        upstream_code="05",
    ),
}


def get_facility(facility_id: str) -> Facility:
    """Look up a facility by id.

    Raises:
        ValueError: If the facility is not part of the roster
    """
    try:
        return FACILITIES[facility_id]
    except KeyError:
        raise ValueError(f"Unknown facility: {facility_id}") from None


def portals_for(facility_ids: list[str] | tuple[str, ...]) -> list[str]:
    """Return the distinct portals needed for the given facilities, in order."""
    portals: list[str] = []
    for facility_id in facility_ids:
        portal = get_facility(facility_id).portal
        if portal not in portals:
            portals.append(portal)
    return portals
