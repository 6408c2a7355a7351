"""Membership pricing extraction: pure functions over page text, never raise."""

import re

from pydantic import BaseModel, Field

from dpc_enrichment.extractors.patterns import (
    AGE_TIER_OPEN_RE,
    AGE_TIER_RE,
    CONTACT_FOR_PRICING_RE,
    PLAUSIBLE_RANGES,
    PRICING_PATTERNS,
)
from dpc_enrichment.models.providers import PricingConfidence, PricingTier

CONTACT_FOR_PRICING_NOTE = "Contact practice for pricing"


class PricingExtraction(BaseModel):
    monthly_fee: int | None = None
    child_monthly_fee: int | None = None
    family_fee: int | None = None
    enrollment_fee: int | None = None
    annual_fee: int | None = None
    pricing_tiers: list[PricingTier] = Field(default_factory=list)
    pricing_notes: str | None = None
    pricing_confidence: PricingConfidence = PricingConfidence.none

    @property
    def found(self) -> bool:
        return self.pricing_confidence != PricingConfidence.none


def parse_price(raw: str | None) -> int | None:
    """Parse "$1,200.00" / "85" into whole dollars; None when there are no digits."""
    if not raw:
        return None
    cleaned = re.sub(r"[$,\s]", "", raw)
    if not re.search(r"\d", cleaned):
        return None
    try:
        return round(float(cleaned))
    except ValueError:
        return None


def is_plausible(target: str, amount: int) -> bool:
    low, high = PLAUSIBLE_RANGES[target]
    return low <= amount <= high


def extract_age_tiers(text: str) -> list[PricingTier]:
    """Collect age-banded monthly prices ("Ages 0-17: $50", "65+: $100")."""
    tiers: list[PricingTier] = []
    seen: set[tuple[int, int | None]] = set()

    for match in AGE_TIER_RE.finditer(text):
        age_min, age_max = int(match.group(1)), int(match.group(2))
        fee = parse_price(match.group(3))
        if fee is None or age_min > age_max or not is_plausible("monthly_fee", fee):
            continue
        if (age_min, age_max) in seen:
            continue
        seen.add((age_min, age_max))
        tiers.append(
            PricingTier(label=f"Ages {age_min}-{age_max}", monthly_fee=fee, age_min=age_min, age_max=age_max)
        )

    for match in AGE_TIER_OPEN_RE.finditer(text):
        age_min = int(match.group(1))
        fee = parse_price(match.group(2))
        if fee is None or not is_plausible("monthly_fee", fee) or (age_min, None) in seen:
            continue
        seen.add((age_min, None))
        tiers.append(PricingTier(label=f"Ages {age_min}+", monthly_fee=fee, age_min=age_min))

    return tiers


def _adult_tier_fee(tiers: list[PricingTier]) -> int:
    for tier in tiers:
        if tier.age_min is not None and tier.age_min >= 18:
            return tier.monthly_fee
    return tiers[0].monthly_fee


def extract_pricing(text: str | None) -> PricingExtraction:
    """Scan free text for membership pricing.

    Walks PRICING_PATTERNS in order; the first plausible match per target
    field wins. Confidence follows how the monthly figure was obtained:

    - stated monthly amount or age tiers: high
    - low end of a monthly range, or an annual amount divided by 12: medium
    - only secondary fees (enrollment, family, child): low
    - nothing: none

    Args:
        text: Rendered page text. None or empty yields an empty result.

    Returns:
        PricingExtraction with every field independently optional.
    """
    result = PricingExtraction()
    if not text:
        return result

    derived_monthly = False
    notes: list[str] = []

    for pattern in PRICING_PATTERNS:
        if getattr(result, pattern.target) is not None:
            continue
        for match in pattern.regex.finditer(text):
            amount = parse_price(match.group(1))
            if amount is None or not is_plausible(pattern.target, amount):
                continue
            setattr(result, pattern.target, amount)
            if pattern.target == "monthly_fee" and pattern.derived:
                derived_monthly = True
                upper = parse_price(match.group(2))
                if upper is not None:
                    notes.append(f"Monthly range ${amount}-${upper}")
            break

    result.pricing_tiers = extract_age_tiers(text)

    if result.monthly_fee is None and result.pricing_tiers:
        result.monthly_fee = _adult_tier_fee(result.pricing_tiers)

    if result.monthly_fee is None and result.annual_fee is not None:
        result.monthly_fee = round(result.annual_fee / 12)
        derived_monthly = True
        notes.append(f"Annual ${result.annual_fee}")

    if result.pricing_tiers or (result.monthly_fee is not None and not derived_monthly):
        result.pricing_confidence = PricingConfidence.high
    elif result.monthly_fee is not None:
        result.pricing_confidence = PricingConfidence.medium
    elif any(
        value is not None
        for value in (result.enrollment_fee, result.family_fee, result.child_monthly_fee)
    ):
        result.pricing_confidence = PricingConfidence.low

    if not result.found and CONTACT_FOR_PRICING_RE.search(text):
        notes.append(CONTACT_FOR_PRICING_NOTE)

    if notes:
        result.pricing_notes = "; ".join(notes)
    return result
