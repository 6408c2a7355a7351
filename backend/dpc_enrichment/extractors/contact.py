"""Contact and people extractors: phone, email, physicians, patient intake status."""

import phonenumbers

from dpc_enrichment.extractors.patterns import (
    ACCEPTING_RE,
    CREDENTIALS_RE,
    EMAIL_RE,
    IMAGE_SUFFIXES,
    NOT_ACCEPTING_RE,
    PHYSICIAN_NAME_PATTERNS,
    PLACEHOLDER_EMAIL_DOMAINS,
)

PHONE_REGION = "US"


def _national_digits(number: phonenumbers.PhoneNumber) -> str | None:
    if number.country_code != 1 or not phonenumbers.is_valid_number(number):
        return None
    return str(number.national_number)


def normalize_phone(raw: str | None) -> str | None:
    """Reduce a valid North American number to its 10 national digits."""
    if not raw:
        return None
    try:
        number = phonenumbers.parse(raw, PHONE_REGION)
    except phonenumbers.NumberParseException:
        return None
    return _national_digits(number)


def extract_phone(text: str | None) -> str | None:
    """First valid North American number in free text, as 10 digits."""
    if not text:
        return None
    for match in phonenumbers.PhoneNumberMatcher(text, PHONE_REGION):
        digits = _national_digits(match.number)
        if digits:
            return digits
    return None


def extract_emails(text: str | None) -> list[str]:
    """All distinct emails in order of appearance, minus placeholders and image names."""
    if not text:
        return []
    emails: list[str] = []
    for match in EMAIL_RE.finditer(text):
        email = match.group(0).lower()
        domain = email.rsplit("@", 1)[1]
        if domain in PLACEHOLDER_EMAIL_DOMAINS or email.endswith(IMAGE_SUFFIXES):
            continue
        if email not in emails:
            emails.append(email)
    return emails


def extract_physicians(text: str | None) -> list[str]:
    """Names from "Dr./Doctor <Name>" and "<Name>, M.D./D.O." mentions.

    Both passes run independently; the merged list keeps first-seen order
    and drops repeats.
    """
    if not text:
        return []
    names: list[str] = []
    for pattern in PHYSICIAN_NAME_PATTERNS:
        for match in pattern.finditer(text):
            name = " ".join(match.group(1).split())
            if name not in names:
                names.append(name)
    return names


def extract_accepting_patients(text: str | None) -> bool | None:
    """True / False when the page says so, None when it is silent."""
    if not text:
        return None
    if NOT_ACCEPTING_RE.search(text):
        return False
    if ACCEPTING_RE.search(text):
        return True
    return None


def extract_credentials(text: str | None) -> str | None:
    if not text:
        return None
    match = CREDENTIALS_RE.search(text)
    return match.group(0) if match else None
