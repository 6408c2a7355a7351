"""US geography reference data and location sanity checks.

Pure lookups only. The resolver and the merge rules both lean on these so
that "is this location believable?" has exactly one answer.
"""

import re

# Sentinels for "location unknown". The three always travel together.
UNKNOWN_CITY = "Unknown"
UNKNOWN_STATE = "XX"
UNKNOWN_ZIP = "00000"

# 50 states + DC + PR
VALID_STATES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "DC", "PR",
})

STATE_ABBREVIATIONS: dict[str, str] = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR",
    "California": "CA", "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE",
    "Florida": "FL", "Georgia": "GA", "Hawaii": "HI", "Idaho": "ID",
    "Illinois": "IL", "Indiana": "IN", "Iowa": "IA", "Kansas": "KS",
    "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME", "Maryland": "MD",
    "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN", "Mississippi": "MS",
    "Missouri": "MO", "Montana": "MT", "Nebraska": "NE", "Nevada": "NV",
    "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM", "New York": "NY",
    "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH", "Oklahoma": "OK",
    "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI", "South Carolina": "SC",
    "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX", "Utah": "UT",
    "Vermont": "VT", "Virginia": "VA", "Washington": "WA", "West Virginia": "WV",
    "Wisconsin": "WI", "Wyoming": "WY", "District of Columbia": "DC",
    "Puerto Rico": "PR",
}

# Maryland ZIPs start with 206–212 or 214–219 (213 is unassigned).
# "MD" also happens to be the most common physician credential, so a
# scraped "..., MD 10001" is far more often a title than a state.
MD_ZIP_PREFIXES = frozenset({
    "206", "207", "208", "209", "210", "211", "212",
    "214", "215", "216", "217", "218", "219",
})

# First names seen in scraped "city" slots on physician profile pages.
COMMON_FIRST_NAMES = frozenset({
    "Michael", "John", "James", "Robert", "David", "William", "Richard",
    "Joseph", "Thomas", "Charles", "Christopher", "Daniel", "Matthew",
    "Mary", "Patricia", "Jennifer", "Linda", "Elizabeth", "Barbara", "Susan",
    "Sarah", "Karen", "Nancy", "Lisa", "Jessica", "Amanda", "Melissa",
    "Rebekah", "Gregory", "Bukie", "Aimee", "Katy", "Physician", "Owner",
})

_NAME_SUFFIX_RE = re.compile(r"(?:^|[\s,])(MD|DO|PhD|Jr|Sr|III|II|Owner|Physician)\.?$", re.IGNORECASE)

_ZIP_RE = re.compile(r"^\d{5}$")

_STATE_BY_NAME = {name.lower(): code for name, code in STATE_ABBREVIATIONS.items()}


def normalize_state(value: str | None) -> str | None:
    """Return a 2-letter state code for an abbreviation or full state name."""
    if not value:
        return None
    cleaned = value.strip()
    if len(cleaned) == 2:
        return cleaned.upper()
    return _STATE_BY_NAME.get(cleaned.lower())


def normalize_zip(value: str | None) -> str | None:
    """Reduce ``12345-6789`` / ``12345`` to the 5-digit form, else None."""
    if not value:
        return None
    digits = re.sub(r"\D", "", value)[:5]
    return digits if len(digits) == 5 else None


def is_valid_state(state: str | None) -> bool:
    return bool(state) and state in VALID_STATES


def is_valid_md_zip(zip_code: str | None) -> bool:
    return bool(zip_code) and zip_code[:3] in MD_ZIP_PREFIXES


def is_known_zip(zip_code: str | None) -> bool:
    return bool(zip_code) and zip_code != UNKNOWN_ZIP and bool(_ZIP_RE.match(zip_code))


def is_known_city(city: str | None) -> bool:
    return bool(city and city.strip()) and city.strip() != UNKNOWN_CITY


def state_zip_consistent(state: str | None, zip_code: str | None) -> bool:
    """State-specific ZIP rule. Only Maryland is checked today."""
    if state == "MD":
        return is_valid_md_zip(zip_code)
    return True


def is_valid_location(city: str | None, state: str | None, zip_code: str | None) -> bool:
    """True when the triple is a real, believable US location (never a sentinel)."""
    if not is_known_city(city) or not is_valid_state(state) or not is_known_zip(zip_code):
        return False
    return state_zip_consistent(state, zip_code)


def looks_like_name(text: str, provider_name: str | None) -> bool:
    """Heuristic: is a captured "city" actually part of a person's name?

    True when the text contains one of the provider's own name tokens
    (longer than 2 chars), starts with a common first name, or ends with a
    credential/name suffix.
    """
    cleaned = text.strip()
    if not cleaned:
        return True
    lowered = cleaned.lower()

    if provider_name:
        for part in provider_name.lower().split():
            part = part.strip(".,")
            if len(part) > 2 and part in lowered:
                return True

    if _NAME_SUFFIX_RE.search(cleaned):
        return True

    words = cleaned.split()
    if len(words) <= 3 and words[0] in COMMON_FIRST_NAMES:
        return True

    return False
