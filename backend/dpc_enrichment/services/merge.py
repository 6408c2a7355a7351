"""Field-level merge of a candidate into a stored provider row.

The rules that keep re-runs safe live here:

- a placeholder never replaces a real value
- city/state/zip_code are written together, and only as a valid triple
- latitude/longitude are written together
- specialties only grow
- pricing is only replaced by pricing of equal or higher confidence

Every function returns the dict of columns to write; an empty dict means
the row is already up to date.
"""

from datetime import datetime, timezone
from typing import Any

from dpc_enrichment.core.geography import (
    UNKNOWN_CITY,
    UNKNOWN_STATE,
    UNKNOWN_ZIP,
    is_valid_location,
)
from dpc_enrichment.models.providers import PricingConfidence, Provider, ProviderCandidate
from dpc_enrichment.services.discovery import is_directory_url
from dpc_enrichment.services.scoring import PLACEHOLDER_ADDRESSES, PLACEHOLDER_NAMES

PLACEHOLDER_TEXT = frozenset({"", "unknown"})

TEXT_FIELDS = ("name", "practice_name", "address", "phone", "email", "website")

PRICING_VALUE_FIELDS = ("monthly_fee", "child_monthly_fee", "family_fee", "enrollment_fee")


def is_placeholder(field: str, value: Any) -> bool:
    """True when value carries no information for field."""
    if value is None:
        return True
    if field in ("name", "practice_name"):
        return str(value).strip().lower() in PLACEHOLDER_NAMES
    if field == "address":
        return str(value).strip().lower() in PLACEHOLDER_ADDRESSES
    if field == "website":
        # A directory listing URL stands in for "no site found yet"
        return not str(value).strip() or is_directory_url(str(value))
    if field == "monthly_fee":
        return value == 0
    if field == "pricing_confidence":
        return value == PricingConfidence.none or value == PricingConfidence.none.value
    if isinstance(value, str):
        return value.strip().lower() in PLACEHOLDER_TEXT
    if isinstance(value, list):
        return not value
    return False


def _confidence(value: Any) -> PricingConfidence:
    try:
        return PricingConfidence(value or PricingConfidence.none.value)
    except ValueError:
        return PricingConfidence.none


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _plan_text(existing: dict, candidate: ProviderCandidate, fill_only: bool) -> dict:
    update: dict = {}
    for field in TEXT_FIELDS:
        new = getattr(candidate, field)
        if is_placeholder(field, new):
            continue
        old = existing.get(field)
        if is_placeholder(field, old) or (not fill_only and old != new):
            if old != new:
                update[field] = new
    return update


def _plan_location(existing: dict, candidate: ProviderCandidate, fill_only: bool) -> dict:
    new = (candidate.city, candidate.state, candidate.zip_code)
    if not is_valid_location(*new):
        return {}
    old = (existing.get("city"), existing.get("state"), existing.get("zip_code"))
    if old == new:
        return {}
    # An existing triple that fails validation (MD false positive) is as good as unknown
    if is_valid_location(*old) and fill_only:
        return {}
    return {"city": new[0], "state": new[1], "zip_code": new[2]}


def _plan_coordinates(existing: dict, candidate: ProviderCandidate, fill_only: bool) -> dict:
    if candidate.latitude is None or candidate.longitude is None:
        return {}
    old = (existing.get("latitude"), existing.get("longitude"))
    new = (candidate.latitude, candidate.longitude)
    if old == new:
        return {}
    has_old = old[0] is not None and old[1] is not None
    if has_old and fill_only:
        return {}
    return {"latitude": new[0], "longitude": new[1]}


def _plan_pricing(existing: dict, candidate: ProviderCandidate) -> dict:
    stored = _confidence(existing.get("pricing_confidence"))
    incoming = candidate.pricing_confidence

    if incoming == PricingConfidence.none:
        # Notes alone ("contact practice for pricing") only land on rows with no pricing at all
        if candidate.pricing_notes and stored == PricingConfidence.none and not existing.get("pricing_notes"):
            return {"pricing_notes": candidate.pricing_notes, "pricing_scraped_at": _now()}
        return {}

    if incoming.rank < stored.rank:
        return {}

    update: dict = {}
    for field in PRICING_VALUE_FIELDS:
        value = getattr(candidate, field)
        if value is not None and not is_placeholder(field, value) and existing.get(field) != value:
            update[field] = value
    if candidate.pricing_tiers:
        tiers = [tier.model_dump() for tier in candidate.pricing_tiers]
        if existing.get("pricing_tiers") != tiers:
            update["pricing_tiers"] = tiers
    if candidate.pricing_notes and existing.get("pricing_notes") != candidate.pricing_notes:
        update["pricing_notes"] = candidate.pricing_notes
    if incoming != stored:
        update["pricing_confidence"] = incoming.value
    if update:
        update["pricing_scraped_at"] = _now()
    return update


def plan_update(existing: dict, candidate: ProviderCandidate, *, fill_only: bool = False) -> dict:
    """Columns to write so that existing absorbs what candidate knows.

    Args:
        existing: Current store row.
        candidate: Freshly extracted record.
        fill_only: Only fill placeholders, never replace real values.
            Enrichment passes (geocoding, discovery, pricing) use this; a
            re-scrape of the row's own source does not.

    Returns:
        Field-level update. Empty when nothing would change.
    """
    update: dict = {}
    update.update(_plan_text(existing, candidate, fill_only))
    update.update(_plan_location(existing, candidate, fill_only))
    update.update(_plan_coordinates(existing, candidate, fill_only))

    if candidate.specialties:
        current = list(existing.get("specialties") or [])
        merged = current + [s for s in candidate.specialties if s not in current]
        if merged != current:
            update["specialties"] = merged

    if candidate.accepting_patients is not None and existing.get("accepting_patients") != candidate.accepting_patients:
        if not fill_only or existing.get("accepting_patients") is None:
            update["accepting_patients"] = candidate.accepting_patients

    update.update(_plan_pricing(existing, candidate))
    return update


def reset_invalid_location(existing: dict) -> dict:
    """Return the sentinel triple when the stored location is a known false positive.

    A triple that is already the sentinel, or that validates, is left alone.
    """
    triple = (existing.get("city"), existing.get("state"), existing.get("zip_code"))
    if triple == (UNKNOWN_CITY, UNKNOWN_STATE, UNKNOWN_ZIP) or is_valid_location(*triple):
        return {}
    return {"city": UNKNOWN_CITY, "state": UNKNOWN_STATE, "zip_code": UNKNOWN_ZIP}


def new_provider_row(provider_id: str, candidate: ProviderCandidate) -> dict:
    """Fresh row for a never-seen provider: sentinel location, then whatever the candidate knows."""
    base = Provider(id=provider_id, name=candidate.display_name or "Unknown").to_row()
    base.update(plan_update(base, candidate))
    if is_placeholder("address", base.get("address")) and candidate.address_text:
        base["address"] = candidate.address_text
    base["data_source"] = candidate.source.value
    # Round-trip through the model so invariants hold on insert
    return Provider.from_row(base).to_row()
