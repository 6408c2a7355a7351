"""Rate-limited geocoding against Nominatim (address search and reverse) and Zippopotam (ZIP centroids)."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import BaseModel

from dpc_enrichment.core.config import settings
from dpc_enrichment.core.errors import FetchFailure
from dpc_enrichment.core.geography import normalize_state, normalize_zip
from dpc_enrichment.fetchers.rendering import JsonFetcher

logger = logging.getLogger(__name__)


class GeocodeResult(BaseModel):
    latitude: float
    longitude: float
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


class RateLimiter:
    """Enforces a minimum interval between calls to one external endpoint.

    One instance per endpoint. ``wait()`` sleeps just long enough that the
    gap since the previous call is at least ``min_interval`` seconds.
    """

    def __init__(self, min_interval: float):
        self.min_interval = min_interval
        self._last_call: float | None = None

    async def wait(self) -> None:
        if self._last_call is not None:
            remaining = self.min_interval - (time.monotonic() - self._last_call)
            if remaining > 0:
                await asyncio.sleep(remaining)
        self._last_call = time.monotonic()


def _nominatim_city(address: dict) -> str | None:
    return address.get("city") or address.get("town") or address.get("village") or address.get("hamlet")


def _nominatim_street(address: dict) -> str | None:
    street = " ".join(part for part in (address.get("house_number"), address.get("road")) if part)
    return street or None


class GeocodingClient:
    """Forward and reverse geocoding plus ZIP centroid lookups over one httpx session.

    ZIP centroids are cached for the lifetime of the client, misses included.
    Nominatim answers 429 when it is being hit too hard; those calls are
    retried after ``retry_delay`` seconds, doubling each time, up to
    ``max_retries`` times before the FetchFailure is raised.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        nominatim_url: str | None = None,
        reverse_url: str | None = None,
        zippopotam_url: str | None = None,
        nominatim_interval: float | None = None,
        zippopotam_interval: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._json = JsonFetcher(http)
        self._nominatim_url = nominatim_url or settings.NOMINATIM_URL
        self._reverse_url = reverse_url or settings.NOMINATIM_REVERSE_URL
        self._zippopotam_url = (zippopotam_url or settings.ZIPPOPOTAM_URL).rstrip("/")
        # Search and reverse share one Nominatim budget
        self._nominatim_limiter = RateLimiter(
            settings.NOMINATIM_MIN_INTERVAL if nominatim_interval is None else nominatim_interval
        )
        self._zippopotam_limiter = RateLimiter(
            settings.ZIPPOPOTAM_MIN_INTERVAL if zippopotam_interval is None else zippopotam_interval
        )
        self._max_retries = settings.GEOCODE_MAX_RETRIES if max_retries is None else max_retries
        self._retry_delay = settings.GEOCODE_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self._sleep = sleep
        self._zip_cache: dict[str, GeocodeResult | None] = {}

    async def _nominatim(self, url: str, params: dict[str, Any]) -> Any:
        attempt = 0
        while True:
            await self._nominatim_limiter.wait()
            try:
                return await self._json.get(url, params=params)
            except FetchFailure as exc:
                if exc.status != 429 or attempt >= self._max_retries:
                    raise
                delay = self._retry_delay * (2**attempt)
                attempt += 1
                logger.warning("Nominatim rate limited, retry %d/%d in %.1fs", attempt, self._max_retries, delay)
                await self._sleep(delay)

    async def forward(self, query: str) -> GeocodeResult | None:
        """Geocode a free-form US address. Returns the first hit, or None.

        Raises:
            FetchFailure: on network errors or non-success status.
        """
        data = await self._nominatim(
            self._nominatim_url,
            {"q": query, "format": "json", "limit": 1, "countrycodes": "us", "addressdetails": 1},
        )
        if not isinstance(data, list) or not data:
            logger.debug("Nominatim: no result for %r", query)
            return None

        hit = data[0]
        try:
            latitude, longitude = float(hit["lat"]), float(hit["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Nominatim: malformed hit for %r", query)
            return None

        address = hit.get("address") or {}
        return GeocodeResult(
            latitude=latitude,
            longitude=longitude,
            street=_nominatim_street(address),
            city=_nominatim_city(address),
            state=normalize_state(address.get("state")),
            zip_code=normalize_zip(address.get("postcode")),
        )

    async def reverse(self, latitude: float, longitude: float) -> GeocodeResult | None:
        """Address components for a coordinate pair, or None when Nominatim has none.

        Raises:
            FetchFailure: on network errors or non-success status.
        """
        data = await self._nominatim(
            self._reverse_url,
            {"lat": latitude, "lon": longitude, "format": "json", "addressdetails": 1, "zoom": 18},
        )
        if not isinstance(data, dict) or "error" in data:
            logger.debug("Nominatim: nothing at %s,%s", latitude, longitude)
            return None

        address = data.get("address") or {}
        if address.get("country_code", "us") != "us":
            logger.debug("Nominatim: %s,%s is outside the US", latitude, longitude)
            return None
        return GeocodeResult(
            latitude=latitude,
            longitude=longitude,
            street=_nominatim_street(address),
            city=_nominatim_city(address),
            state=normalize_state(address.get("state")),
            zip_code=normalize_zip(address.get("postcode")),
        )

    async def zip_centroid(self, zip_code: str) -> GeocodeResult | None:
        """Resolve a 5-digit ZIP to its centroid, from cache when possible.

        Raises:
            FetchFailure: on network errors or non-success status (404 is a miss).
        """
        if zip_code in self._zip_cache:
            return self._zip_cache[zip_code]

        await self._zippopotam_limiter.wait()
        data = await self._json.get(f"{self._zippopotam_url}/{zip_code}")

        result = None
        places = data.get("places") if isinstance(data, dict) else None
        if places:
            place = places[0]
            try:
                result = GeocodeResult(
                    latitude=float(place["latitude"]),
                    longitude=float(place["longitude"]),
                    city=place.get("place name"),
                    state=place.get("state abbreviation"),
                    zip_code=zip_code,
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("Zippopotam: malformed place for %s", zip_code)

        self._zip_cache[zip_code] = result
        return result
