"""Practice websites: the landing page, then the usual pricing sub-pages."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from urllib.parse import urljoin, urlparse

from dpc_enrichment.core.config import settings
from dpc_enrichment.core.errors import FetchFailure
from dpc_enrichment.extractors.patterns import PRICING_URL_PATTERNS
from dpc_enrichment.fetchers.rendering import PageRenderer, RenderedPage

logger = logging.getLogger(__name__)


def normalize_website(url: str) -> str:
    url = url.strip()
    if not urlparse(url).scheme:
        url = "https://" + url
    return url.rstrip("/")


class PracticeSiteFetcher:
    def __init__(
        self,
        renderer: PageRenderer,
        *,
        delay_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.renderer = renderer
        self.delay_seconds = settings.SUBPAGE_DELAY_SECONDS if delay_seconds is None else delay_seconds
        self._sleep = sleep

    async def pages(self, website: str) -> AsyncIterator[RenderedPage]:
        """Yield the landing page, then each pricing sub-page that loads.

        The caller stops iterating once it has what it needs. A failing
        sub-page is skipped; a failing landing page raises. Sub-pages are
        spaced by delay_seconds.

        Raises:
            FetchFailure: if the landing page cannot be loaded.
        """
        base = normalize_website(website)
        yield await self.renderer.render(base)

        for path in PRICING_URL_PATTERNS:
            url = urljoin(base + "/", path.lstrip("/"))
            if self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)
            try:
                page = await self.renderer.render(url)
            except FetchFailure as exc:
                logger.debug("Skipping %s: %s", url, exc)
                continue
            yield page
