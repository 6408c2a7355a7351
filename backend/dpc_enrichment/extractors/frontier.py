"""Parse a DPC Frontier practice page into a ProviderCandidate.

Three layers are read, most structured first, and a later layer only fills
fields an earlier one left empty:

    1. JSON-LD (schema.org MedicalClinic / Physician)
    2. __NEXT_DATA__ practice object
    3. Rendered DOM: h1 name, h2 "in City, ST", Google Maps directions
       link, bold tier prices, free-text pricing and contact details
"""

import logging
import re
from typing import Any
from urllib.parse import parse_qs, unquote_plus, urlparse

from bs4 import BeautifulSoup

from dpc_enrichment.core.geography import normalize_state, normalize_zip
from dpc_enrichment.extractors.contact import (
    extract_accepting_patients,
    extract_emails,
    extract_phone,
    extract_physicians,
    normalize_phone,
)
from dpc_enrichment.extractors.patterns import (
    FRONTIER_PRICES_UNKNOWN_RE,
    IN_CITY_STATE_RE,
    PER_VISIT_RE,
)
from dpc_enrichment.extractors.pricing import extract_pricing, is_plausible, parse_price
from dpc_enrichment.models.providers import (
    FrontierPayload,
    MapPoint,
    PricingConfidence,
    PricingTier,
    ProviderCandidate,
    SourceName,
)

logger = logging.getLogger(__name__)


def _dig(data: Any, *keys: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _text(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = " ".join(str(value).split())
    return cleaned or None


def _coordinate(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # The map app uses 0 for "no location"
    return number if number != 0 else None


def _fill(candidate: ProviderCandidate, field: str, value: Any) -> None:
    if value in (None, "", []):
        return
    if getattr(candidate, field) in (None, "", []):
        setattr(candidate, field, value)


def _fill_coordinates(candidate: ProviderCandidate, lat: Any, lng: Any) -> None:
    latitude, longitude = _coordinate(lat), _coordinate(lng)
    if latitude is None or longitude is None:
        return
    if candidate.latitude is None and candidate.longitude is None:
        candidate.latitude = latitude
        candidate.longitude = longitude
        candidate.coordinates_from_source = True


def _join_address(street: str | None, city: str | None, state: str | None, zip_code: str | None) -> str | None:
    tail = " ".join(part for part in (state, zip_code) if part)
    parts = [part for part in (street, city, tail) if part]
    return ", ".join(parts) or None


# ---------------------------------------------------------------------------
# Map listing
# ---------------------------------------------------------------------------


def parse_map_points(next_data: dict | None) -> list[MapPoint]:
    """Read the map markers from the mapper's __NEXT_DATA__.

    Markers use compact keys: i (id), l (lat), g (lng), k (type), o (open).
    Entries without an id or a usable coordinate pair are skipped.
    """
    practices = _dig(next_data, "props", "pageProps", "practices")
    if not isinstance(practices, list):
        return []

    points: list[MapPoint] = []
    for entry in practices:
        if not isinstance(entry, dict):
            continue
        practice_id = entry.get("i") or entry.get("id") or entry.get("practiceId")
        latitude = _coordinate(entry.get("l", entry.get("lat")))
        longitude = _coordinate(entry.get("g", entry.get("lng")))
        if not practice_id or latitude is None or longitude is None:
            continue
        is_open = entry.get("o")
        points.append(
            MapPoint(
                practice_id=str(practice_id),
                latitude=latitude,
                longitude=longitude,
                practice_type=_text(entry.get("k")),
                accepting_patients=is_open if isinstance(is_open, bool) else None,
            )
        )
    return points


# ---------------------------------------------------------------------------
# Practice page layers
# ---------------------------------------------------------------------------


def _apply_json_ld(candidate: ProviderCandidate, json_ld: dict | None) -> None:
    if not isinstance(json_ld, dict):
        return
    _fill(candidate, "name", _text(json_ld.get("name")))
    _fill(candidate, "phone", normalize_phone(_text(json_ld.get("telephone"))))
    _fill(candidate, "website", _text(json_ld.get("url")))
    _fill(candidate, "email", _text(json_ld.get("email")))

    address = json_ld.get("address")
    if isinstance(address, dict):
        street = _text(address.get("streetAddress"))
        city = _text(address.get("addressLocality"))
        state = normalize_state(_text(address.get("addressRegion")))
        zip_code = normalize_zip(_text(address.get("postalCode")))
        _fill(candidate, "address", street)
        _fill(candidate, "city", city)
        _fill(candidate, "state", state)
        _fill(candidate, "zip_code", zip_code)
        _fill(candidate, "address_text", _join_address(street, city, state, zip_code))

    geo = json_ld.get("geo")
    if isinstance(geo, dict):
        _fill_coordinates(candidate, geo.get("latitude"), geo.get("longitude"))


def _apply_next_data(candidate: ProviderCandidate, next_data: dict | None) -> None:
    practice = _dig(next_data, "props", "pageProps", "practice")
    if not isinstance(practice, dict):
        return

    name = _text(practice.get("name")) or _text(practice.get("legalName"))
    _fill(candidate, "name", name)
    _fill(candidate, "practice_name", _text(practice.get("legalName")) or name)

    street = _text(_dig(practice, "address", "street") or practice.get("street"))
    city = _text(_dig(practice, "address", "city") or practice.get("city"))
    state = normalize_state(_text(_dig(practice, "address", "state") or practice.get("state")))
    zip_code = normalize_zip(_text(_dig(practice, "address", "zip") or practice.get("zipCode")))
    _fill(candidate, "address", street)
    _fill(candidate, "city", city)
    _fill(candidate, "state", state)
    _fill(candidate, "zip_code", zip_code)
    _fill(candidate, "address_text", _join_address(street, city, state, zip_code))

    _fill_coordinates(
        candidate,
        _dig(practice, "location", "lat") or practice.get("latitude"),
        _dig(practice, "location", "lng") or practice.get("longitude"),
    )

    _fill(candidate, "phone", normalize_phone(_text(practice.get("phone") or practice.get("phoneNumber"))))
    _fill(candidate, "website", _text(practice.get("website") or practice.get("websiteUrl")))
    _fill(candidate, "email", _text(practice.get("email")))

    physicians = practice.get("physicians")
    if isinstance(physicians, list):
        names = [_text(p.get("name")) for p in physicians if isinstance(p, dict)]
        _fill(candidate, "physicians", [n for n in names if n])
    elif practice.get("physicianName"):
        _fill(candidate, "physicians", [_text(practice["physicianName"])])

    if practice.get("acceptingPatients") is False:
        candidate.accepting_patients = False

    monthly = parse_price(_text(_dig(practice, "pricing", "monthlyFee")))
    if monthly is not None and is_plausible("monthly_fee", monthly):
        candidate.monthly_fee = monthly
        candidate.pricing_confidence = PricingConfidence.high
    enrollment = parse_price(_text(_dig(practice, "pricing", "enrollmentFee")))
    if enrollment is not None and is_plausible("enrollment_fee", enrollment):
        _fill(candidate, "enrollment_fee", enrollment)


def _maps_query_address(soup: BeautifulSoup) -> str | None:
    for link in soup.select('a[href*="google.com/maps"], a[href*="maps.google"]'):
        query = parse_qs(urlparse(link.get("href", "")).query)
        for key in ("query", "destination", "daddr", "q"):
            if query.get(key):
                return _text(unquote_plus(query[key][0]))
    return None


def _bold_tiers(soup: BeautifulSoup) -> list[PricingTier]:
    """Prices the page sets in bold, labelled by the surrounding line."""
    tiers: list[PricingTier] = []
    for bold in soup.select("strong, b"):
        amount_text = bold.get_text(" ", strip=True)
        if "$" not in amount_text:
            continue
        amount = parse_price(re.sub(r"[^\d$,.]", "", amount_text.split("/")[0]))
        if amount is None or not is_plausible("monthly_fee", amount):
            continue
        container = bold.parent.get_text(" ", strip=True) if bold.parent else ""
        label = _text(container.replace(amount_text, "").strip(" :-")) or "Membership"
        if any(t.label == label and t.monthly_fee == amount for t in tiers):
            continue
        tiers.append(PricingTier(label=label[:80], monthly_fee=amount))
    return tiers


def _apply_dom(candidate: ProviderCandidate, html: str, text: str) -> None:
    soup = BeautifulSoup(html or "", "lxml")

    h1 = soup.select_one("h1")
    if h1:
        _fill(candidate, "name", _text(h1.get_text(" ", strip=True)))

    for h2 in soup.select("h2"):
        match = IN_CITY_STATE_RE.search(h2.get_text(" ", strip=True))
        if match:
            _fill(candidate, "city", match.group(1).strip())
            _fill(candidate, "state", normalize_state(match.group(2)))
            break

    maps_address = _maps_query_address(soup)
    _fill(candidate, "address_text", maps_address)

    page_text = text or soup.get_text("\n", strip=True)

    if FRONTIER_PRICES_UNKNOWN_RE.search(page_text):
        _fill(candidate, "pricing_notes", "Membership prices unknown")
    elif candidate.pricing_confidence == PricingConfidence.none:
        pricing = extract_pricing(page_text)
        tiers = _bold_tiers(soup) if not pricing.pricing_tiers else pricing.pricing_tiers
        if pricing.found:
            candidate.monthly_fee = pricing.monthly_fee
            candidate.child_monthly_fee = pricing.child_monthly_fee
            candidate.family_fee = pricing.family_fee
            _fill(candidate, "enrollment_fee", pricing.enrollment_fee)
            candidate.pricing_tiers = pricing.pricing_tiers
            candidate.pricing_confidence = pricing.pricing_confidence
            _fill(candidate, "pricing_notes", pricing.pricing_notes)
        elif tiers:
            candidate.pricing_tiers = tiers
            candidate.monthly_fee = tiers[0].monthly_fee
            candidate.pricing_confidence = PricingConfidence.high

    per_visit = PER_VISIT_RE.search(page_text)
    if per_visit:
        amount = parse_price(per_visit.group(1) or per_visit.group(2))
        if amount is not None:
            note = f"Per-visit fee ${amount}"
            candidate.pricing_notes = f"{candidate.pricing_notes}; {note}" if candidate.pricing_notes else note

    _fill(candidate, "phone", extract_phone(page_text))
    emails = extract_emails(page_text)
    _fill(candidate, "email", emails[0] if emails else None)
    _fill(candidate, "physicians", extract_physicians(page_text))
    if candidate.accepting_patients is None:
        candidate.accepting_patients = extract_accepting_patients(page_text)


def parse_frontier_payload(payload: FrontierPayload) -> ProviderCandidate:
    """Turn a rendered Frontier practice page into a candidate record.

    Never raises: any layer that is missing or malformed simply contributes
    nothing. The practice id is the canonical provider id (Frontier is the
    primary namespace, so it carries no prefix).
    """
    candidate = ProviderCandidate(
        source=SourceName.dpc_frontier,
        source_id=payload.practice_id,
        source_url=payload.url,
    )
    _apply_json_ld(candidate, payload.json_ld)
    _apply_next_data(candidate, payload.next_data)
    _apply_dom(candidate, payload.html, payload.text)

    if candidate.practice_name is None:
        candidate.practice_name = candidate.name

    logger.debug(
        "Parsed frontier practice %s: name=%r city=%r confidence=%s",
        payload.practice_id, candidate.name, candidate.city, candidate.pricing_confidence.value,
    )
    return candidate
