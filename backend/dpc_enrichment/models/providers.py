from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from dpc_enrichment.core.geography import UNKNOWN_CITY, UNKNOWN_STATE, UNKNOWN_ZIP


class PricingConfidence(str, Enum):
    none = "none"
    low = "low"
    medium = "medium"
    high = "high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    PricingConfidence.none: 0,
    PricingConfidence.low: 1,
    PricingConfidence.medium: 2,
    PricingConfidence.high: 3,
}


class SourceName(str, Enum):
    dpc_frontier = "dpc_frontier"
    dpca = "dpca"
    web_search = "web_search"
    practice_website = "practice_website"
    geocoder = "geocoder"


class PricingTier(BaseModel):
    label: str
    monthly_fee: int
    age_min: int | None = None
    age_max: int | None = None


# ---------------------------------------------------------------------------
# Canonical store rows
# ---------------------------------------------------------------------------


class Provider(BaseModel):
    """One canonical row in the provider table.

    The location sentinels (Unknown / XX / 00000) travel together, and the
    coordinates are either both set or both null.
    """

    id: str
    name: str
    practice_name: str | None = None
    address: str | None = None
    city: str = UNKNOWN_CITY
    state: str = UNKNOWN_STATE
    zip_code: str = UNKNOWN_ZIP
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    monthly_fee: float = Field(default=0, ge=0)
    child_monthly_fee: float | None = None
    family_fee: float | None = None
    enrollment_fee: float | None = None
    pricing_tiers: list[PricingTier] = Field(default_factory=list)
    pricing_notes: str | None = None
    pricing_confidence: PricingConfidence = PricingConfidence.none
    pricing_scraped_at: datetime | None = None
    accepting_patients: bool | None = None
    specialties: list[str] = Field(default_factory=list)
    data_source: str | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "Provider":
        unknown = (
            self.city == UNKNOWN_CITY,
            self.state == UNKNOWN_STATE,
            self.zip_code == UNKNOWN_ZIP,
        )
        if any(unknown) and not all(unknown):
            raise ValueError(
                "city/state/zip_code sentinels must be set together "
                f"(got {self.city!r}, {self.state!r}, {self.zip_code!r})"
            )
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be set together")
        return self

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Provider":
        """Build from a store row, tolerating nulls in columns that have defaults."""
        data = {k: v for k, v in row.items() if v is not None}
        return cls.model_validate(data)

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ProviderSource(BaseModel):
    """Attribution/audit row: one per (provider, originating source)."""

    provider_id: str
    source: str
    source_url: str | None = None
    source_id: str | None = None
    data_quality_score: int = Field(default=0, ge=0, le=100)
    last_scraped: datetime
    # People named on this source's page; kept with the attribution, not the provider row
    physicians: list[str] = Field(default_factory=list)
    credentials: str | None = None


# ---------------------------------------------------------------------------
# Pipeline-internal types
# ---------------------------------------------------------------------------


class LocationData(BaseModel):
    city: str
    state: str
    zip_code: str
    latitude: float | None = None
    longitude: float | None = None
    street: str | None = None
    confidence: Literal["high", "medium", "low"] = "medium"
    method: str = "unknown"

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class ProviderCandidate(BaseModel):
    """Shared candidate record produced by every source parser.

    Every field is optional: absence means "not found on this fetch", never
    "known to be empty".
    """

    source: SourceName
    source_id: str
    source_url: str | None = None

    name: str | None = None
    practice_name: str | None = None
    address: str | None = None
    address_text: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    monthly_fee: float | None = None
    child_monthly_fee: float | None = None
    family_fee: float | None = None
    enrollment_fee: float | None = None
    pricing_tiers: list[PricingTier] = Field(default_factory=list)
    pricing_notes: str | None = None
    pricing_confidence: PricingConfidence = PricingConfidence.none
    accepting_patients: bool | None = None
    specialties: list[str] = Field(default_factory=list)
    physicians: list[str] = Field(default_factory=list)
    credentials: str | None = None
    # True when the source itself published lat/lng (map marker, JSON-LD geo)
    coordinates_from_source: bool = False

    @property
    def display_name(self) -> str | None:
        return self.practice_name or self.name

    def apply_location(self, location: LocationData) -> None:
        self.city = location.city
        self.state = location.state
        self.zip_code = location.zip_code
        if location.street and not self.address:
            self.address = location.street
        if location.has_coordinates and (self.latitude is None or self.longitude is None):
            self.latitude = location.latitude
            self.longitude = location.longitude


# ---------------------------------------------------------------------------
# Raw source payloads (kind-tagged, never passed beyond the extractors)
# ---------------------------------------------------------------------------


class FrontierPayload(BaseModel):
    kind: Literal["frontier"] = "frontier"
    practice_id: str
    url: str
    html: str = ""
    text: str = ""
    next_data: dict[str, Any] | None = None
    json_ld: dict[str, Any] | None = None


class AllianceProfilePayload(BaseModel):
    kind: Literal["alliance"] = "alliance"
    slug: str
    url: str
    html: str = ""
    text: str = ""


class MapPoint(BaseModel):
    """One marker on the Frontier map: compact keys in the source (i/l/g/k/o)."""

    practice_id: str
    latitude: float
    longitude: float
    practice_type: str | None = None
    accepting_patients: bool | None = None
