"""Location resolution: text patterns first, geocoders as fallback.

Strategies, first success wins:

    1. Structured address block ("123 Main St, Springfield, IL 62704")
    2. Bare "City, ST ZIP"
    3. Forward geocode of the fullest address (only if it has a street)
    4. City + state geocode
    5. ZIP centroid

Every candidate location passes the same filters before it is accepted:
state in the 50+DC+PR set, city not a fragment of a person's name, and a
Maryland ZIP prefix whenever the state reads "MD".
"""

import logging
import re
from dataclasses import dataclass

from dpc_enrichment.core.errors import FetchFailure, ValidationRejection
from dpc_enrichment.core.geography import (
    UNKNOWN_CITY,
    UNKNOWN_STATE,
    UNKNOWN_ZIP,
    is_known_city,
    is_known_zip,
    is_valid_state,
    looks_like_name,
    normalize_state,
    normalize_zip,
    state_zip_consistent,
)
from dpc_enrichment.models.providers import LocationData
from dpc_enrichment.services.geocoding import GeocodeResult, GeocodingClient

logger = logging.getLogger(__name__)

STREET_TYPES = (
    "Street|St|Avenue|Ave|Boulevard|Blvd|Road|Rd|Drive|Dr|Lane|Ln|Way|Court|Ct|Parkway|Pkwy"
    "|Highway|Hwy|Place|Pl|Circle|Cir|Terrace|Ter|Trail|Trl|Pike|Square|Sq|Loop"
)

# A city is a short run of capitalized words on one line ("St. Louis",
# "Winston-Salem"); lowercase prose before it is never part of the name.
CITY = r"((?:[A-Z][A-Za-z.'\-]*[ \t]+){0,3}[A-Z][A-Za-z.'\-]*)"

# Words that introduce a place rather than name it
LEADING_CONNECTIVES = frozenset({"in", "at", "near", "located", "serving", "visit", "from"})

ADDRESS_BLOCK_RE = re.compile(
    r"(\d+\s+[A-Za-z0-9 .'#\-]*?\b(?:" + STREET_TYPES + r")\b\.?"
    r"(?:[,\s]+(?:Suite|Ste|Unit|Bldg|Building|Floor|Fl|#)\.?\s*[\w\-]+)?)"
    r"[,\s]+(?:(?:in|at|near)\s+)?" + CITY + r",\s*([A-Z]{2})\s+(\d{5})(?:-\d{4})?\b"
)

CITY_STATE_ZIP_RE = re.compile(r"(?<![\w.'\-])" + CITY + r",\s*([A-Z]{2})\s+(\d{5})(?:-\d{4})?\b")

STREET_ADDRESS_RE = re.compile(r"\d+\s+\w+.*\b(?:" + STREET_TYPES + r")\b", re.IGNORECASE)

MIN_BARE_CITY_LENGTH = 4


@dataclass
class _Hints:
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    street: str | None = None


def has_street_address(text: str | None) -> bool:
    """True when text looks like a street address (number + street type), not just a city."""
    return bool(text) and bool(STREET_ADDRESS_RE.search(text))


def trim_city(city: str) -> str:
    """Drop leading connectives ("In Springfield" -> "Springfield")."""
    words = city.split()
    while words and words[0].lower() in LEADING_CONNECTIVES:
        words.pop(0)
    return " ".join(words)


def check_location(city: str, state: str, zip_code: str, provider_name: str | None) -> None:
    """Apply the acceptance filters to one candidate triple.

    Raises:
        ValidationRejection: naming the first filter that failed.
    """
    if not is_valid_state(state):
        raise ValidationRejection(f"invalid state {state!r}")
    if looks_like_name(city, provider_name):
        raise ValidationRejection(f"city {city!r} looks like a person's name")
    if not state_zip_consistent(state, zip_code):
        raise ValidationRejection(f"state {state} does not match ZIP {zip_code}")


def match_address_block(text: str | None, provider_name: str | None = None) -> LocationData | None:
    """Strategy 1: street-typed address block followed by City, ST ZIP."""
    if not text:
        return None
    for match in ADDRESS_BLOCK_RE.finditer(text):
        street, city, state, zip_code = (g.strip() for g in match.groups())
        city = trim_city(city)
        if not city:
            continue
        try:
            check_location(city, state, zip_code, provider_name)
        except ValidationRejection as exc:
            logger.debug("Address block rejected: %s", exc)
            continue
        return LocationData(
            city=city, state=state, zip_code=zip_code, street=street, confidence="high", method="address_block"
        )
    return None


def match_city_state_zip(text: str | None, provider_name: str | None = None) -> LocationData | None:
    """Strategy 2: bare "City, ST ZIP" with a minimum city length."""
    if not text:
        return None
    for match in CITY_STATE_ZIP_RE.finditer(text):
        city, state, zip_code = (g.strip() for g in match.groups())
        city = trim_city(city)
        if len(city) < MIN_BARE_CITY_LENGTH or any(ch.isdigit() for ch in city):
            continue
        try:
            check_location(city, state, zip_code, provider_name)
        except ValidationRejection as exc:
            logger.debug("City/state/zip rejected: %s", exc)
            continue
        return LocationData(city=city, state=state, zip_code=zip_code, confidence="medium", method="city_state_zip")
    return None


def match_text(text: str | None, provider_name: str | None = None) -> LocationData | None:
    """Strategies 1 and 2 only: no network."""
    return match_address_block(text, provider_name) or match_city_state_zip(text, provider_name)


class LocationResolver:
    """Runs the strategy chain for one provider at a time.

    ``geocoder`` is optional: without it the resolver stops after the text
    strategies, which is what the offline location-repair pass wants.
    """

    def __init__(self, geocoder: GeocodingClient | None = None):
        self.geocoder = geocoder

    def _clean_hints(
        self, city: str | None, state: str | None, zip_code: str | None, provider_name: str | None
    ) -> _Hints:
        hints = _Hints()
        state = normalize_state(state)
        zip_code = normalize_zip(zip_code)
        if is_known_city(city) and not looks_like_name(city, provider_name):
            hints.city = city.strip()
        if is_valid_state(state) and state != UNKNOWN_STATE:
            hints.state = state
        if is_known_zip(zip_code):
            hints.zip_code = zip_code
        if hints.state and hints.zip_code and not state_zip_consistent(hints.state, hints.zip_code):
            # One of the two is wrong and there is no telling which
            logger.debug("Dropping inconsistent hints %s/%s", hints.state, hints.zip_code)
            hints.state = None
            hints.zip_code = None
        return hints

    def _accept_geocode(
        self, result: GeocodeResult | None, hints: _Hints, confidence: str, method: str
    ) -> LocationData | None:
        if result is None:
            return None
        city = result.city or hints.city or UNKNOWN_CITY
        state = result.state or hints.state
        zip_code = result.zip_code or hints.zip_code
        if state is not None and not is_valid_state(state):
            logger.debug("Geocode result rejected: invalid state %r", state)
            return None
        if state and zip_code and not state_zip_consistent(state, zip_code):
            logger.debug("Geocode result rejected: %s does not match ZIP %s", state, zip_code)
            return None
        if not (state and zip_code and is_known_city(city)):
            # Coordinates are usable, the triple is not: keep it all-unknown
            city, state, zip_code = UNKNOWN_CITY, UNKNOWN_STATE, UNKNOWN_ZIP
        return LocationData(
            city=city,
            state=state,
            zip_code=zip_code,
            latitude=result.latitude,
            longitude=result.longitude,
            street=hints.street,
            confidence=confidence,
            method=method,
        )

    async def _try(self, label: str, coro) -> GeocodeResult | None:
        try:
            return await coro
        except FetchFailure as exc:
            logger.warning("%s failed: %s", label, exc)
            return None

    async def _geocode(self, address_text: str | None, hints: _Hints) -> LocationData | None:
        if self.geocoder is None:
            return None

        full_address = address_text
        if hints.street and hints.city and hints.state:
            full_address = f"{hints.street}, {hints.city}, {hints.state} {hints.zip_code or ''}".strip()
        if has_street_address(full_address):
            result = await self._try("Forward geocode", self.geocoder.forward(full_address))
            location = self._accept_geocode(result, hints, "medium", "forward_geocode")
            if location:
                return location

        if hints.city and hints.state:
            result = await self._try(
                "City/state geocode", self.geocoder.forward(f"{hints.city}, {hints.state}")
            )
            location = self._accept_geocode(result, hints, "low", "city_state_geocode")
            if location:
                return location

        if hints.zip_code:
            result = await self._try("ZIP centroid", self.geocoder.zip_centroid(hints.zip_code))
            location = self._accept_geocode(result, hints, "low", "zip_centroid")
            if location:
                return location

        return None

    async def resolve(
        self,
        address_text: str | None,
        city: str | None = None,
        state: str | None = None,
        zip_code: str | None = None,
        provider_name: str | None = None,
        require_coordinates: bool = False,
    ) -> LocationData | None:
        """Resolve a provider's location.

        Args:
            address_text: Raw address-bearing text from the source page.
            city, state, zip_code: Hints already on record. Sentinels and
                values that fail the filters are ignored.
            provider_name: Display name used to spot name fragments
                masquerading as a city.
            require_coordinates: When True, a text match without
                coordinates is not final; its city/state/ZIP become the
                hints for the geocoding strategies, and the text match's
                triple is kept alongside whatever coordinates they find.

        Returns:
            LocationData, or None when every strategy came up empty.
        """
        text_match = match_text(address_text, provider_name)
        if text_match and not require_coordinates:
            return text_match

        hints = self._clean_hints(city, state, zip_code, provider_name)
        if text_match:
            hints = _Hints(
                city=text_match.city, state=text_match.state, zip_code=text_match.zip_code, street=text_match.street
            )

        geocoded = await self._geocode(address_text, hints)

        if text_match:
            if geocoded:
                text_match.latitude = geocoded.latitude
                text_match.longitude = geocoded.longitude
                text_match.method = f"{text_match.method}+{geocoded.method}"
            return text_match
        return geocoded
