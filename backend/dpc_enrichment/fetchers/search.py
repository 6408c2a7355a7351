"""Web search over the DuckDuckGo HTML endpoint."""

import logging
from urllib.parse import parse_qs, urlparse

import httpx
from bs4 import BeautifulSoup

from dpc_enrichment.core.config import settings
from dpc_enrichment.core.errors import FetchFailure

logger = logging.getLogger(__name__)


def decode_result_url(href: str) -> str | None:
    """Unwrap DuckDuckGo's /l/?uddg=<target> redirect; pass direct links through."""
    if not href:
        return None
    parsed = urlparse(href if not href.startswith("//") else "https:" + href)
    target = parse_qs(parsed.query).get("uddg")
    if target:
        return target[0]
    if href.startswith(("http://", "https://")):
        return href
    return None


def parse_search_results(html: str) -> list[str]:
    """Result URLs from a DuckDuckGo HTML results page, in rank order."""
    soup = BeautifulSoup(html, "lxml")
    urls: list[str] = []
    for link in soup.select("a.result__a"):
        url = decode_result_url(link.get("href", ""))
        if url and url not in urls:
            urls.append(url)
    return urls


class SearchClient:
    def __init__(self, http: httpx.AsyncClient, search_url: str | None = None):
        self._http = http
        self.search_url = search_url or settings.SEARCH_URL

    async def search(self, query: str) -> list[str]:
        """Ordered candidate URLs for a query.

        Raises:
            FetchFailure: on network errors or non-success status.
        """
        try:
            response = await self._http.get(
                self.search_url, params={"q": query}, timeout=settings.REQUEST_TIMEOUT_SECONDS
            )
        except httpx.HTTPError as exc:
            raise FetchFailure(f"Search failed: {exc}", url=self.search_url) from exc
        if response.status_code >= 400:
            raise FetchFailure(
                f"Search returned HTTP {response.status_code}", url=self.search_url, status=response.status_code
            )
        urls = parse_search_results(response.text)
        logger.debug("Search %r returned %d results", query, len(urls))
        return urls
