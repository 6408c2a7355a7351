"""Page rendering capability.

The pipeline only needs four things from a page source: navigate, wait
until ready, read the text, read embedded script JSON. ``PageRenderer`` is
that contract; Playwright (for JS-rendered sources) and plain httpx (for
static HTML) both satisfy it.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from bs4 import BeautifulSoup
from playwright.async_api import Browser, BrowserContext, async_playwright
from playwright.async_api import Error as PlaywrightError

from dpc_enrichment.core.config import settings
from dpc_enrichment.core.errors import FetchFailure

logger = logging.getLogger(__name__)

# Pause after load for client-side rendering to settle
SETTLE_MS = 1500


@dataclass
class RenderedPage:
    """Snapshot of one rendered page."""

    url: str
    html: str
    text: str
    status: int = 200

    def _soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "lxml")

    def script_json(self, selector: str) -> Any | None:
        """Parse the JSON body of the first script tag matching selector, or None."""
        tag = self._soup().select_one(selector)
        if tag is None or not tag.string:
            return None
        try:
            return json.loads(tag.string)
        except ValueError:
            logger.debug("Unparseable JSON in %s on %s", selector, self.url)
            return None

    def next_data(self) -> dict | None:
        data = self.script_json("script#__NEXT_DATA__")
        return data if isinstance(data, dict) else None

    def json_ld(self) -> dict | None:
        """First JSON-LD object that describes a place (has an address or geo)."""
        for tag in self._soup().select('script[type="application/ld+json"]'):
            try:
                data = json.loads(tag.string or "")
            except ValueError:
                continue
            if isinstance(data, dict):
                items = data.get("@graph", [data])
            elif isinstance(data, list):
                items = data
            else:
                continue
            for item in items:
                if isinstance(item, dict) and ("address" in item or "geo" in item):
                    return item
        return None

    def links(self) -> list[str]:
        return [a["href"] for a in self._soup().select("a[href]")]


class PageRenderer(Protocol):
    async def render(self, url: str, *, wait_for: str | None = None) -> RenderedPage:
        """Load url and return its rendered content.

        Raises:
            FetchFailure: on network errors, timeouts or non-success status.
        """
        ...


class PlaywrightRenderer:
    """Headless Chromium renderer. Use as an async context manager."""

    def __init__(self, headless: bool | None = None, timeout_seconds: float | None = None):
        self.headless = settings.HEADLESS if headless is None else headless
        self.timeout_ms = int((timeout_seconds or settings.PAGE_TIMEOUT_SECONDS) * 1000)
        self._playwright: Any = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=["--no-sandbox", "--disable-setuid-sandbox"],
        )
        self._context = await self._browser.new_context(user_agent=settings.USER_AGENT)

    async def stop(self) -> None:
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def render(self, url: str, *, wait_for: str | None = None) -> RenderedPage:
        if self._context is None:
            raise FetchFailure("Browser not started", url=url)

        page = await self._context.new_page()
        try:
            response = await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
            status = response.status if response else 200
            if status >= 400:
                raise FetchFailure(f"HTTP {status}", url=url, status=status)
            if wait_for:
                await page.wait_for_selector(wait_for, timeout=self.timeout_ms)
            await page.wait_for_timeout(SETTLE_MS)
            html = await page.content()
            text = await page.inner_text("body")
            return RenderedPage(url=page.url, html=html, text=text, status=status)
        except PlaywrightError as exc:
            # Playwright's TimeoutError subclasses Error
            raise FetchFailure(f"Render failed: {exc}", url=url) from exc
        finally:
            await page.close()


class HttpxRenderer:
    """Static HTML renderer for sources that do not need JavaScript."""

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def render(self, url: str, *, wait_for: str | None = None) -> RenderedPage:
        try:
            response = await self._http.get(url, timeout=settings.REQUEST_TIMEOUT_SECONDS, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise FetchFailure(f"Request failed: {exc}", url=url) from exc
        if response.status_code >= 400:
            raise FetchFailure(f"HTTP {response.status_code}", url=url, status=response.status_code)

        html = response.text
        text = BeautifulSoup(html, "lxml").get_text("\n", strip=True)
        return RenderedPage(url=str(response.url), html=html, text=text, status=response.status_code)


class JsonFetcher:
    """GET a JSON document. A 404 is a not-found signal (None), not an error."""

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def get(self, url: str, params: dict | None = None) -> Any | None:
        try:
            response = await self._http.get(url, params=params, timeout=settings.REQUEST_TIMEOUT_SECONDS)
        except httpx.HTTPError as exc:
            raise FetchFailure(f"Request failed: {exc}", url=url) from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise FetchFailure(f"HTTP {response.status_code}", url=url, status=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise FetchFailure(f"Non-JSON body: {exc}", url=url) from exc


def build_http_client() -> httpx.AsyncClient:
    """Shared httpx session: descriptive User-Agent, bounded timeout."""
    return httpx.AsyncClient(
        headers={"User-Agent": settings.USER_AGENT},
        timeout=httpx.Timeout(settings.REQUEST_TIMEOUT_SECONDS),
    )
