"""Data quality score: pure function of a provider row, 0-100."""

from dpc_enrichment.core.geography import is_valid_location
from dpc_enrichment.models.providers import PricingConfidence, Provider
from dpc_enrichment.services.discovery import is_directory_url

# Weights sum to 100. Every term is independent and non-negative, so setting
# a missing field can only raise the score.
WEIGHTS: dict[str, int] = {
    "name": 10,
    "street_address": 15,
    "location": 15,
    "coordinates": 15,
    "phone": 10,
    "website": 10,
    "pricing": 15,
    "email": 5,
    "specialties": 5,
}

# Pricing term by confidence; non-decreasing, tops out at WEIGHTS["pricing"]
PRICING_POINTS: dict[PricingConfidence, int] = {
    PricingConfidence.none: 0,
    PricingConfidence.low: 5,
    PricingConfidence.medium: 10,
    PricingConfidence.high: 15,
}

PLACEHOLDER_NAMES = frozenset({"", "unknown", "dpc frontier", "dpc practice", "unknown practice"})
PLACEHOLDER_ADDRESSES = frozenset({"", "unknown", "address not available"})


def has_real_name(name: str | None) -> bool:
    return bool(name) and name.strip().lower() not in PLACEHOLDER_NAMES


def has_real_address(address: str | None) -> bool:
    return bool(address) and address.strip().lower() not in PLACEHOLDER_ADDRESSES


def has_pricing(provider: Provider) -> bool:
    return provider.monthly_fee > 0 or provider.pricing_confidence != PricingConfidence.none


def score(provider: Provider) -> int:
    """Score field completeness.

    name 10, real street address 15, valid city/state/ZIP 15, coordinates 15,
    phone 10, website 10, pricing up to 15 (low 5 / medium 10 / high 15),
    email 5, specialties 5.
    """
    total = 0
    if has_real_name(provider.name):
        total += WEIGHTS["name"]
    if has_real_address(provider.address):
        total += WEIGHTS["street_address"]
    if is_valid_location(provider.city, provider.state, provider.zip_code):
        total += WEIGHTS["location"]
    if provider.latitude is not None and provider.longitude is not None:
        total += WEIGHTS["coordinates"]
    if provider.phone:
        total += WEIGHTS["phone"]
    if provider.website and not is_directory_url(provider.website):
        total += WEIGHTS["website"]
    if has_pricing(provider):
        # A price with no recorded confidence still counts as the lowest band
        total += max(PRICING_POINTS[provider.pricing_confidence], PRICING_POINTS[PricingConfidence.low])
    if provider.email:
        total += WEIGHTS["email"]
    if provider.specialties:
        total += WEIGHTS["specialties"]
    return min(total, 100)
