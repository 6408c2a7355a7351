"""Parse a DPC Alliance physician profile into a ProviderCandidate."""

import logging
import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from dpc_enrichment.extractors.contact import (
    extract_accepting_patients,
    extract_credentials,
    extract_emails,
    extract_phone,
)
from dpc_enrichment.extractors.patterns import (
    ADDRESS_LINE_RE,
    CORE_SPECIALTIES_RE,
    KNOWN_SPECIALTIES,
    SOCIAL_DOMAINS,
)
from dpc_enrichment.models.providers import AllianceProfilePayload, ProviderCandidate, SourceName

logger = logging.getLogger(__name__)

ALLIANCE_ID_PREFIX = "dpca-"


def alliance_provider_id(slug: str) -> str:
    return f"{ALLIANCE_ID_PREFIX}{slug.strip('/')}"


def profile_slug(href: str, directory_path: str) -> str | None:
    """Extract the profile slug from a directory link, or None for non-profile links.

    >>> profile_slug("https://www.dpcalliance.org/find-a-dpc-physician/jane-doe/", "/find-a-dpc-physician/")
    'jane-doe'
    """
    path = urlparse(href).path
    if directory_path not in path or "?" in href:
        return None
    slug = path.split(directory_path, 1)[1].strip("/")
    if not slug or "/" in slug:
        return None
    return slug


def _is_practice_link(href: str) -> bool:
    host = urlparse(href).netloc.lower()
    if not host or "dpcalliance" in host:
        return False
    return not any(host == d or host.endswith("." + d) for d in SOCIAL_DOMAINS)


def _practice_website(soup: BeautifulSoup) -> str | None:
    # An explicit "Practice Link" label beats the first outbound link
    for label in soup.find_all(string=re.compile(r"Practice Link", re.IGNORECASE)):
        container = label.find_parent()
        while container is not None:
            link = container.find("a", href=True)
            if link and _is_practice_link(link["href"]):
                return link["href"].strip()
            container = container.find_parent() if container.name not in ("body", "html") else None
    for link in soup.select('a[href^="http"]'):
        if _is_practice_link(link["href"]):
            return link["href"].strip()
    return None


def _specialties(text: str) -> list[str]:
    found: list[str] = []
    match = CORE_SPECIALTIES_RE.search(text)
    if match:
        found.extend(part.strip() for part in match.group(1).split(",") if part.strip())
    for specialty in KNOWN_SPECIALTIES:
        if specialty in text:
            found.append(specialty)
    unique: list[str] = []
    for specialty in found:
        if specialty not in unique:
            unique.append(specialty)
    return unique


def parse_alliance_payload(payload: AllianceProfilePayload) -> ProviderCandidate:
    """Turn a rendered directory profile into a candidate record.

    The physician's name doubles as the practice name: profiles rarely name
    the practice. The address-bearing line is left raw in ``address_text``
    for the location resolver, which knows how to reject the profile's own
    name showing up where a city should be.
    """
    soup = BeautifulSoup(payload.html or "", "lxml")
    text = payload.text or soup.get_text("\n", strip=True)

    candidate = ProviderCandidate(
        source=SourceName.dpca,
        source_id=alliance_provider_id(payload.slug),
        source_url=payload.url,
    )

    h1 = soup.select_one("h1")
    if h1:
        name = " ".join(h1.get_text(" ", strip=True).split())
        candidate.name = name or None
        candidate.practice_name = candidate.name

        sibling = h1.find_next_sibling()
        sibling_text = sibling.get_text(" ", strip=True) if sibling else ""
        if re.match(r"^[A-Z]{2}", sibling_text):
            candidate.credentials = sibling_text
    if candidate.credentials is None:
        candidate.credentials = extract_credentials(text)

    address_match = ADDRESS_LINE_RE.search(text)
    if address_match:
        address = " ".join(address_match.group(1).split())
        candidate.address_text = address

    candidate.specialties = _specialties(text)
    candidate.website = _practice_website(soup)
    candidate.phone = extract_phone(text)
    emails = extract_emails(text)
    candidate.email = emails[0] if emails else None
    candidate.accepting_patients = extract_accepting_patients(text)

    logger.debug("Parsed alliance profile %s: name=%r address=%r", payload.slug, candidate.name, candidate.address_text)
    return candidate
