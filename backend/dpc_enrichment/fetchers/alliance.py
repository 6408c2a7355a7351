"""DPC Alliance directory: listing page and physician profiles."""

import logging
from urllib.parse import urljoin

from dpc_enrichment.core.config import settings
from dpc_enrichment.extractors.alliance import profile_slug
from dpc_enrichment.fetchers.rendering import PageRenderer
from dpc_enrichment.models.providers import AllianceProfilePayload

logger = logging.getLogger(__name__)


class AllianceFetcher:
    def __init__(
        self,
        renderer: PageRenderer,
        base_url: str | None = None,
        directory_path: str | None = None,
    ):
        self.renderer = renderer
        self.base_url = (base_url or settings.ALLIANCE_BASE_URL).rstrip("/")
        self.directory_path = directory_path or settings.ALLIANCE_DIRECTORY_PATH

    @property
    def directory_url(self) -> str:
        return urljoin(self.base_url + "/", self.directory_path.lstrip("/"))

    def profile_url(self, slug: str) -> str:
        return f"{self.directory_url.rstrip('/')}/{slug}"

    async def list_profile_slugs(self) -> list[str]:
        """Profile slugs linked from the directory page, deduplicated in page order.

        Raises:
            FetchFailure: if the directory page cannot be loaded.
        """
        page = await self.renderer.render(self.directory_url, wait_for=f'a[href*="{self.directory_path}"]')
        slugs: list[str] = []
        for href in page.links():
            slug = profile_slug(urljoin(self.base_url, href), self.directory_path)
            if slug and slug not in slugs:
                slugs.append(slug)
        logger.info("Alliance directory lists %d profiles", len(slugs))
        return slugs

    async def fetch_profile(self, slug: str) -> AllianceProfilePayload:
        """Render one profile page.

        Raises:
            FetchFailure: on network errors, timeouts or non-success status.
        """
        url = self.profile_url(slug)
        page = await self.renderer.render(url, wait_for="h1")
        return AllianceProfilePayload(slug=slug, url=url, html=page.html, text=page.text)
