"""Practice website discovery: search query building and directory filtering."""

from urllib.parse import urlparse

from dpc_enrichment.core.geography import UNKNOWN_CITY

# Directories and aggregators that list the practice but are not its site
DIRECTORY_DOMAINS = (
    "dpccareers.org",
    "dpcfrontier.com",
    "dpcdocs.com",
    "dpcalliance.org",
    "directprimarycare.com",
    "healthgrades.com",
    "vitals.com",
    "zocdoc.com",
    "yelp.com",
    "facebook.com",
    "linkedin.com",
    "twitter.com",
    "instagram.com",
)

MAX_RESULTS_CONSIDERED = 5


def is_directory_url(url: str | None) -> bool:
    """True for directory/aggregator/social hosts, any .gov host, and unparseable URLs."""
    if not url:
        return False
    url = url.strip()
    if "://" not in url:
        # Stored websites are often bare hosts ("examplefm.com")
        url = "https://" + url
    try:
        host = urlparse(url).hostname
    except ValueError:
        return True
    if not host:
        return True
    host = host.lower()
    if host.endswith(".gov"):
        return True
    return any(host == domain or host.endswith("." + domain) for domain in DIRECTORY_DOMAINS)


def pick_practice_website(urls: list[str]) -> str | None:
    """First of the top search results that is not a directory page."""
    for url in urls[:MAX_RESULTS_CONSIDERED]:
        if not url.startswith(("http://", "https://")):
            continue
        if not is_directory_url(url):
            return url
    return None


def build_search_query(name: str, city: str | None = None, state: str | None = None) -> str:
    """'"Example Family Medicine" DPC direct primary care Springfield IL'"""
    query = f'"{name.strip()}" DPC direct primary care'
    if city and state and city != UNKNOWN_CITY:
        query = f"{query} {city} {state}"
    return query
