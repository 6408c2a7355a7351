"""Pattern tables shared by the extractors.

Each table is an ordered list: the extractor walks it top to bottom and the
first hit per target field wins. Adding a source-specific pattern means
adding a row here, not a branch in the extractor.
"""

import re
from dataclasses import dataclass

# A dollar amount: $85, $1,200, $99.50
_AMOUNT = r"\$\s?(\d{1,4}(?:,\d{3})?(?:\.\d{2})?)"


@dataclass(frozen=True)
class PricingPattern:
    target: str
    regex: re.Pattern
    # Value is inferred from the match (low end of a range) rather than stated
    derived: bool = False


PRICING_PATTERNS: list[PricingPattern] = [
    # "$45-$85/month", "$45 – 85 per month". Checked before the plain monthly
    # patterns so the upper bound of a range is never read as the price.
    PricingPattern(
        "monthly_fee",
        re.compile(
            _AMOUNT + r"\s*[-–]\s*\$?\s?(\d{1,3}(?:,\d{3})?)\s*(?:/|per\s*)\s*(?:month|mo)\b",
            re.IGNORECASE,
        ),
        derived=True,
    ),
    PricingPattern(
        "monthly_fee",
        re.compile(_AMOUNT + r"\s*(?:/|per\s*)\s*(?:month|mo)\b", re.IGNORECASE),
    ),
    PricingPattern(
        "monthly_fee",
        re.compile(
            # "Family membership: $300" belongs to family_fee, not here
            r"(?<!family\s)(?<!household\s)(?<!child\s)(?<!children\s)(?<!pediatric\s)"
            r"\b(?:monthly|membership|individual)\s*(?:fee|rate|cost|price|plan)?\s*(?:of|:|-|\s)\s*"
            + _AMOUNT,
            re.IGNORECASE,
        ),
    ),
    PricingPattern(
        "monthly_fee",
        re.compile(_AMOUNT + r"\s*(?:monthly|a month)\b", re.IGNORECASE),
    ),
    PricingPattern(
        "annual_fee",
        re.compile(_AMOUNT + r"\s*(?:/|per\s*)\s*(?:year|yr)\b", re.IGNORECASE),
    ),
    PricingPattern(
        "annual_fee",
        re.compile(r"annual\s*(?:fee|rate|cost|price|membership)?\s*(?:of|:|-|\s)\s*" + _AMOUNT, re.IGNORECASE),
    ),
    PricingPattern(
        "annual_fee",
        re.compile(_AMOUNT + r"\s*(?:annually|a year)\b", re.IGNORECASE),
    ),
    PricingPattern(
        "enrollment_fee",
        re.compile(
            r"(?:enrollment|registration|one[\s-]?time|sign[\s-]?up|onboarding)\s*(?:fee)?\s*(?:of|:|-|\s)\s*"
            + _AMOUNT,
            re.IGNORECASE,
        ),
    ),
    PricingPattern(
        "enrollment_fee",
        re.compile(_AMOUNT + r"\s*(?:one[\s-]?time|enrollment|registration)\b", re.IGNORECASE),
    ),
    PricingPattern(
        "family_fee",
        re.compile(
            r"(?:family|household|couple)\s*(?:membership|rate|fee|plan|cap|max(?:imum)?)?\s*(?:of|:|-|\s)\s*"
            + _AMOUNT,
            re.IGNORECASE,
        ),
    ),
    PricingPattern(
        "family_fee",
        re.compile(_AMOUNT + r"\s*(?:/|per\s*)\s*(?:family|household)\b", re.IGNORECASE),
    ),
    PricingPattern(
        "child_monthly_fee",
        re.compile(
            r"(?:child|children|pediatric|kids?)\s*(?:membership|rate|fee|plan)?\s*(?:of|:|-|\s)\s*"
            + _AMOUNT,
            re.IGNORECASE,
        ),
    ),
]

# Accepted (min, max) whole-dollar windows per field. Anything outside is a
# misread (a phone fragment, a lab price, a deductible) and is dropped.
PLAUSIBLE_RANGES: dict[str, tuple[int, int]] = {
    "monthly_fee": (20, 500),
    "annual_fee": (300, 6000),
    "enrollment_fee": (0, 500),
    "family_fee": (25, 1000),
    "child_monthly_fee": (10, 300),
}

# "Ages 0-17: $50", "18 - 64 years = $85"
AGE_TIER_RE = re.compile(
    r"(?:ages?\s*)?\b(\d{1,2})\s*[-–]\s*(\d{1,2})\s*(?:years?|yrs?)?\s*(?:old)?\s*[:=]?\s*" + _AMOUNT,
    re.IGNORECASE,
)
# "65+: $100"
AGE_TIER_OPEN_RE = re.compile(
    r"(?:ages?\s*)?\b(\d{1,2})\s*\+\s*(?:years?|yrs?)?\s*[:=]?\s*" + _AMOUNT,
    re.IGNORECASE,
)

CONTACT_FOR_PRICING_RE = re.compile(
    r"(?:contact|call)\s+(?:us|the\s+(?:office|practice))?\s*(?:for|about)\s+(?:pricing|rates|membership\s+fees)"
    r"|pricing\s+(?:is\s+)?available\s+(?:up)?on\s+request",
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Contact / people
# ---------------------------------------------------------------------------

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

PLACEHOLDER_EMAIL_DOMAINS = frozenset({"example.com", "test.com", "domain.com", "email.com"})

# Retina asset names ("logo@2x.png") look like emails to EMAIL_RE
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")

# Ordered: both passes run, results merged in first-seen order
PHYSICIAN_NAME_PATTERNS: list[re.Pattern] = [
    re.compile(r"\b(?:Dr\.?|Doctor)\s+([A-Z][a-z]+(?:\s+[A-Z]\.)?(?:\s+[A-Z][a-z'\-]+){1,2})"),
    re.compile(
        r"\b([A-Z][a-z]+(?:\s+[A-Z]\.)?(?:\s+[A-Z][a-z'\-]+){1,2}),?\s+(?:M\.D\.|D\.O\.|MD\b|DO\b)"
    ),
]

NOT_ACCEPTING_RE = re.compile(
    r"not\s+(?:currently\s+)?accepting(?:\s+new)?\s+patients|wait(?:ing)?[\s-]?list|practice\s+is\s+(?:currently\s+)?full",
    re.IGNORECASE,
)
ACCEPTING_RE = re.compile(r"(?:now|currently)?\s*accepting\s+new\s+(?:patients|members)", re.IGNORECASE)

CREDENTIALS_RE = re.compile(
    r"\b(?:MD|DO|PhD|FAAFP|FACP|FACEP|NP|PA-C)(?:,\s*(?:MD|DO|PhD|FAAFP|FACP|FACEP|NP|PA-C))*\b"
)

# ---------------------------------------------------------------------------
# Practice sites
# ---------------------------------------------------------------------------

# Sub-pages tried, in order, when the landing page carries no price
PRICING_URL_PATTERNS: list[str] = [
    "/pricing",
    "/membership",
    "/fees",
    "/plans",
    "/join",
    "/services",
    "/how-it-works",
    "/dpc",
    "/enroll",
]

SOCIAL_DOMAINS = ("facebook.com", "linkedin.com", "instagram.com", "twitter.com", "x.com", "youtube.com")

KNOWN_SPECIALTIES: list[str] = [
    "Family Medicine",
    "Internal Medicine",
    "Pediatrics",
    "Geriatrics",
    "Women's Health",
    "Men's Health",
    "Obesity Medicine",
    "Sports Medicine",
    "Functional Medicine",
]

# ---------------------------------------------------------------------------
# Source page fragments
# ---------------------------------------------------------------------------

# Frontier practice header: "<h2>... in Springfield, IL</h2>"
IN_CITY_STATE_RE = re.compile(r"\bin\s+([A-Za-z][A-Za-z .'\-]+?),\s*([A-Z]{2})\b")

FRONTIER_PRICES_UNKNOWN_RE = re.compile(r"Membership prices[^.]{0,80}?Unknown\.?", re.IGNORECASE)

PER_VISIT_RE = re.compile(
    _AMOUNT + r"\s*(?:/|per\s*)\s*(?:office\s+)?visit\b|(?:per[\s-]visit|visit)\s*fee\s*(?:of|:|\s)\s*" + _AMOUNT,
    re.IGNORECASE,
)

# Loose street address with a trailing ZIP, used to find the address-bearing
# line on directory profile pages
ADDRESS_LINE_RE = re.compile(
    r"(\d+[^\n<]{2,80}?\b(?:Ave(?:nue)?|St(?:reet)?|R(?:oa)?d|Dr(?:ive)?|Blvd|Boulevard|Way|Ln|Lane|Ct|Court"
    r"|Pkwy|Parkway|Hwy|Highway|Pl(?:ace)?|Cir(?:cle)?|Ter(?:race)?|Trl|Trail)\b[^\n<]{0,80}?\d{5}(?:-\d{4})?)",
    re.IGNORECASE,
)

CORE_SPECIALTIES_RE = re.compile(r"Core Specialties\s*:?\s*([^\n]+)", re.IGNORECASE)
