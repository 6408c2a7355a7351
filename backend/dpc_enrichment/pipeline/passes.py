"""The enrichment passes. Each one is driven by PipelineRunner via a CLI script.

    scrape_frontier         map practices -> canonical rows
    scrape_alliance         directory profiles -> dpca- rows
    fix_alliance_locations  re-resolve dpca- rows with unknown or false-positive locations
    geocode_missing         coordinates for rows that have none
    backfill_coordinates    map-marker coordinates matched to rows by name
    reverse_geocode         address and location from coordinates for unplaced rows
    discover_websites       search for the practice's own site
    scrape_pricing          membership pricing from practice sites
"""

import logging
from contextlib import aclosing
from datetime import datetime, timezone

from dpc_enrichment.core.config import settings
from dpc_enrichment.core.errors import FatalSetupFailure, NoMatchFound
from dpc_enrichment.core.geography import UNKNOWN_STATE, is_valid_location
from dpc_enrichment.extractors.alliance import ALLIANCE_ID_PREFIX, parse_alliance_payload
from dpc_enrichment.extractors.contact import extract_accepting_patients, extract_emails, extract_phone
from dpc_enrichment.extractors.frontier import parse_frontier_payload
from dpc_enrichment.extractors.pricing import extract_pricing
from dpc_enrichment.fetchers.alliance import AllianceFetcher
from dpc_enrichment.fetchers.frontier import FrontierFetcher
from dpc_enrichment.fetchers.practice_site import PracticeSiteFetcher
from dpc_enrichment.fetchers.search import SearchClient
from dpc_enrichment.models.providers import (
    LocationData,
    MapPoint,
    PricingConfidence,
    Provider,
    ProviderCandidate,
    ProviderSource,
    SourceName,
)
from dpc_enrichment.pipeline.runner import ItemResult
from dpc_enrichment.services.discovery import build_search_query, pick_practice_website
from dpc_enrichment.services.geocoding import GeocodingClient
from dpc_enrichment.services.location import LocationResolver, check_location
from dpc_enrichment.services.matching import (
    MatchAction,
    MatchDecision,
    match_by_name,
    name_prefix,
    resolve_target,
)
from dpc_enrichment.services.merge import (
    is_placeholder,
    new_provider_row,
    plan_update,
    reset_invalid_location,
)
from dpc_enrichment.services.scoring import score
from dpc_enrichment.store.repository import ProviderStore

logger = logging.getLogger(__name__)


def _display_name(row: dict) -> str:
    return row.get("practice_name") or row.get("name") or row.get("id", "?")


def _short(text: str, width: int = 40) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def _name_filter(row_or_id: dict | str, name: str | None) -> str | None:
    """Only person-named (directory) rows get the name-as-city filter.

    Practice names routinely contain their own city ("Springfield Family
    Medicine"), so applying it to them would reject correct locations.
    """
    provider_id = row_or_id if isinstance(row_or_id, str) else row_or_id.get("id", "")
    return name if provider_id.startswith(ALLIANCE_ID_PREFIX) else None


async def save_candidate(
    store: ProviderStore,
    decision: MatchDecision,
    candidate: ProviderCandidate,
    *,
    fill_only: bool,
    existing: dict | None = None,
) -> ItemResult:
    """Apply a match decision: insert or field-level update, then bump attribution.

    Returns:
        ok when something was written (or attribution refreshed on a
        re-scrape), skipped when the row was already up to date.
    """
    if decision.action == MatchAction.not_found:
        raise NoMatchFound(decision.reason)

    if decision.action == MatchAction.create:
        merged = new_provider_row(decision.provider_id, candidate)
        await store.insert(merged)
        message = "created"
    else:
        if existing is None:
            existing = await store.get(decision.provider_id)
        if existing is None:
            raise NoMatchFound(f"row {decision.provider_id} disappeared")
        update = plan_update(existing, candidate, fill_only=fill_only)
        merged = {**existing, **update}
        # Validate before writing so an invariant break never reaches the store
        Provider.from_row(merged)
        if not update and fill_only:
            return ItemResult.skipped("already up to date")
        await store.update_fields(decision.provider_id, update)
        message = f"updated {', '.join(sorted(update))}" if update else "unchanged"

    await store.upsert_source(
        ProviderSource(
            provider_id=decision.provider_id,
            source=candidate.source.value,
            source_url=candidate.source_url,
            source_id=candidate.source_id,
            data_quality_score=score(Provider.from_row(merged)),
            last_scraped=datetime.now(timezone.utc),
            physicians=candidate.physicians,
            credentials=candidate.credentials,
        )
    )
    return ItemResult.ok(message)


class BasePass:
    name = "base"
    title = "Pass"
    delay_seconds = 0.0

    def __init__(self, store: ProviderStore):
        self.store = store

    def describe(self, item) -> str:
        if isinstance(item, dict):
            return _short(_display_name(item))
        return str(item)

    async def remaining(self) -> int | None:
        return None


# ---------------------------------------------------------------------------
# Source scrapes
# ---------------------------------------------------------------------------


class ScrapeFrontierPass(BasePass):
    name = "scrape_frontier"
    title = "DPC Frontier scrape"
    delay_seconds = settings.SCRAPE_DELAY_SECONDS

    def __init__(self, store: ProviderStore, fetcher: FrontierFetcher, resolver: LocationResolver):
        super().__init__(store)
        self.fetcher = fetcher
        self.resolver = resolver

    async def worklist(self) -> list[MapPoint]:
        points = await self.fetcher.list_map_points()
        if not points:
            raise FatalSetupFailure("DPC Frontier map returned no practices")
        return points

    def describe(self, item: MapPoint) -> str:
        return f"practice {item.practice_id}"

    async def process(self, item: MapPoint) -> ItemResult:
        payload = await self.fetcher.fetch_practice(item.practice_id)
        candidate = parse_frontier_payload(payload)
        if not candidate.display_name:
            return ItemResult.skipped("page has no practice name")

        if candidate.latitude is None or candidate.longitude is None:
            candidate.latitude, candidate.longitude = item.latitude, item.longitude
            candidate.coordinates_from_source = True
        if candidate.accepting_patients is None:
            candidate.accepting_patients = item.accepting_patients

        if not is_valid_location(candidate.city, candidate.state, candidate.zip_code):
            # No directions link: let the text strategies scan the whole page
            location = await self.resolver.resolve(
                candidate.address_text or payload.text,
                candidate.city,
                candidate.state,
                candidate.zip_code,
            )
            if location:
                candidate.apply_location(location)

        decision = await resolve_target(
            self.store, SourceName.dpc_frontier, candidate.source_id, candidate.display_name, create=True
        )
        return await save_candidate(self.store, decision, candidate, fill_only=not decision.exact)


class ScrapeAlliancePass(BasePass):
    name = "scrape_alliance"
    title = "DPC Alliance scrape"
    delay_seconds = settings.SCRAPE_DELAY_SECONDS

    def __init__(self, store: ProviderStore, fetcher: AllianceFetcher, resolver: LocationResolver):
        super().__init__(store)
        self.fetcher = fetcher
        self.resolver = resolver

    async def worklist(self) -> list[str]:
        slugs = await self.fetcher.list_profile_slugs()
        if not slugs:
            raise FatalSetupFailure("DPC Alliance directory returned no profiles")
        return slugs

    async def process(self, item: str) -> ItemResult:
        payload = await self.fetcher.fetch_profile(item)
        candidate = parse_alliance_payload(payload)
        if not candidate.name:
            return ItemResult.skipped("profile has no name")

        location = await self.resolver.resolve(candidate.address_text, provider_name=candidate.name)
        if location:
            candidate.apply_location(location)
        elif candidate.address_text:
            candidate.address = candidate.address_text

        decision = await resolve_target(
            self.store, SourceName.dpca, candidate.source_id, candidate.name, create=True
        )
        return await save_candidate(self.store, decision, candidate, fill_only=not decision.exact)


# ---------------------------------------------------------------------------
# Location repair and geocoding
# ---------------------------------------------------------------------------


class FixAllianceLocationsPass(BasePass):
    """Re-resolve dpca- rows whose location is unknown or a false positive.

    Text comes from a fresh render of the profile when a fetcher is given,
    otherwise from the stored address. Rows that still cannot be resolved
    have a false-positive location reset to the sentinel triple.
    """

    name = "fix_alliance_locations"
    title = "DPC Alliance location repair"

    def __init__(
        self,
        store: ProviderStore,
        resolver: LocationResolver,
        fetcher: AllianceFetcher | None = None,
    ):
        super().__init__(store)
        self.resolver = resolver
        self.fetcher = fetcher
        self.delay_seconds = settings.SCRAPE_DELAY_SECONDS if fetcher else 0.0

    async def worklist(self) -> list[dict]:
        rows = await self.store.list_by_id_prefix(ALLIANCE_ID_PREFIX)
        return [
            row for row in rows
            if row.get("state") == UNKNOWN_STATE
            or not is_valid_location(row.get("city"), row.get("state"), row.get("zip_code"))
        ]

    async def process(self, item: dict) -> ItemResult:
        text = item.get("address")
        if self.fetcher:
            payload = await self.fetcher.fetch_profile(item["id"][len(ALLIANCE_ID_PREFIX):])
            text = parse_alliance_payload(payload).address_text or text

        location = await self.resolver.resolve(text, provider_name=item.get("name"))
        if location:
            candidate = ProviderCandidate(source=SourceName.dpca, source_id=item["id"])
            candidate.apply_location(location)
            decision = MatchDecision(action=MatchAction.update, provider_id=item["id"])
            return await save_candidate(self.store, decision, candidate, fill_only=True, existing=item)

        reset = reset_invalid_location(item)
        if reset:
            await self.store.update_fields(item["id"], reset)
            return ItemResult.ok(f"reset false positive {item.get('city')}, {item.get('state')} {item.get('zip_code')}")
        raise NoMatchFound("no location in profile text")

    async def remaining(self) -> int | None:
        return len(await self.store.list_by_state(UNKNOWN_STATE, id_prefix=ALLIANCE_ID_PREFIX))


class GeocodeMissingPass(BasePass):
    """Coordinates for rows that have none. Pacing comes from the geocoder's rate limiters."""

    name = "geocode_missing"
    title = "Geocode missing coordinates"

    def __init__(self, store: ProviderStore, resolver: LocationResolver):
        super().__init__(store)
        self.resolver = resolver

    async def worklist(self) -> list[dict]:
        return await self.store.list_missing("latitude")

    async def process(self, item: dict) -> ItemResult:
        location = await self.resolver.resolve(
            item.get("address"),
            item.get("city"),
            item.get("state"),
            item.get("zip_code"),
            provider_name=_name_filter(item, item.get("name")),
            require_coordinates=True,
        )
        if location is None or not location.has_coordinates:
            raise NoMatchFound("no strategy produced coordinates")

        candidate = ProviderCandidate(source=SourceName.geocoder, source_id=location.method)
        candidate.apply_location(location)
        decision = MatchDecision(action=MatchAction.update, provider_id=item["id"])
        result = await save_candidate(self.store, decision, candidate, fill_only=True, existing=item)
        result.message = f"{result.message} via {location.method} ({location.confidence})"
        return result

    async def remaining(self) -> int | None:
        return len(await self.store.list_missing("latitude"))


class BackfillCoordinatesPass(BasePass):
    """Copy map-marker coordinates onto rows without any, matched by practice name.

    Matches across source namespaces: a directory row for the same practice
    gets the map's coordinates too. Only rows still missing coordinates are
    eligible, and an ambiguous name match writes nothing.
    """

    name = "backfill_coordinates"
    title = "Coordinate backfill"
    delay_seconds = settings.BACKFILL_DELAY_SECONDS

    def __init__(self, store: ProviderStore, fetcher: FrontierFetcher):
        super().__init__(store)
        self.fetcher = fetcher

    async def worklist(self) -> list[MapPoint]:
        points = await self.fetcher.list_map_points()
        if not points:
            raise FatalSetupFailure("DPC Frontier map returned no practices")
        return points

    def describe(self, item: MapPoint) -> str:
        return f"practice {item.practice_id}"

    async def process(self, item: MapPoint) -> ItemResult:
        payload = await self.fetcher.fetch_practice(item.practice_id)
        practice_name = parse_frontier_payload(payload).name
        if not practice_name:
            return ItemResult.skipped("page has no practice name")

        rows = await self.store.find_by_name(name_prefix(practice_name))
        decision = match_by_name(rows, practice_name, namespace=None, missing_field="latitude")
        if decision.action != MatchAction.update:
            raise NoMatchFound(decision.reason)

        candidate = ProviderCandidate(
            source=SourceName.dpc_frontier,
            source_id=item.practice_id,
            source_url=payload.url,
            latitude=item.latitude,
            longitude=item.longitude,
            coordinates_from_source=True,
        )
        existing = next(row for row in rows if row["id"] == decision.provider_id)
        result = await save_candidate(self.store, decision, candidate, fill_only=True, existing=existing)
        result.message = f"{_short(practice_name, 30)} -> {decision.provider_id}"
        return result

    async def remaining(self) -> int | None:
        return len(await self.store.list_missing("latitude"))


def _unplaced_with_coordinates(rows: list[dict]) -> list[dict]:
    return [row for row in rows if row.get("latitude") is not None and row.get("longitude") is not None]


class ReverseGeocodePass(BasePass):
    """Address, city, state and ZIP from coordinates, for rows stuck on the sentinel location.

    The reverse hit goes through the same acceptance filters as every other
    location. Pacing comes from the geocoder's rate limiter.
    """

    name = "reverse_geocode"
    title = "Reverse geocode unplaced rows"

    def __init__(self, store: ProviderStore, geocoder: GeocodingClient):
        super().__init__(store)
        self.geocoder = geocoder

    async def worklist(self) -> list[dict]:
        return _unplaced_with_coordinates(await self.store.list_by_state(UNKNOWN_STATE))

    async def process(self, item: dict) -> ItemResult:
        result = await self.geocoder.reverse(item["latitude"], item["longitude"])
        if result is None or not (result.city and result.state and result.zip_code):
            raise NoMatchFound("no address at these coordinates")
        check_location(result.city, result.state, result.zip_code, _name_filter(item, item.get("name")))

        candidate = ProviderCandidate(source=SourceName.geocoder, source_id="reverse")
        candidate.apply_location(
            LocationData(
                city=result.city,
                state=result.state,
                zip_code=result.zip_code,
                street=result.street,
                confidence="high",
                method="reverse_geocode",
            )
        )
        decision = MatchDecision(action=MatchAction.update, provider_id=item["id"])
        saved = await save_candidate(self.store, decision, candidate, fill_only=True, existing=item)
        saved.message = f"{saved.message} -> {result.city}, {result.state} {result.zip_code}"
        return saved

    async def remaining(self) -> int | None:
        return len(_unplaced_with_coordinates(await self.store.list_by_state(UNKNOWN_STATE)))


# ---------------------------------------------------------------------------
# Practice websites
# ---------------------------------------------------------------------------


def _needs_website(row: dict) -> bool:
    return is_placeholder("website", row.get("website"))


class DiscoverWebsitesPass(BasePass):
    name = "discover_websites"
    title = "Practice website discovery"
    delay_seconds = settings.SEARCH_DELAY_SECONDS

    def __init__(self, store: ProviderStore, search: SearchClient):
        super().__init__(store)
        self.search = search

    async def worklist(self) -> list[dict]:
        rows = [row for row in await self.store.list_all() if _needs_website(row)]
        return sorted(rows, key=lambda r: (r.get("name") or "").lower())

    async def process(self, item: dict) -> ItemResult:
        query = build_search_query(_display_name(item), item.get("city"), item.get("state"))
        website = pick_practice_website(await self.search.search(query))
        if website is None:
            raise NoMatchFound("no non-directory result")

        candidate = ProviderCandidate(source=SourceName.web_search, source_id=query, website=website)
        decision = MatchDecision(action=MatchAction.update, provider_id=item["id"])
        result = await save_candidate(self.store, decision, candidate, fill_only=True, existing=item)
        result.message = website
        return result

    async def remaining(self) -> int | None:
        return sum(1 for row in await self.store.list_all() if _needs_website(row))


def _needs_pricing(row: dict, force: bool) -> bool:
    if _needs_website(row):
        return False
    if force:
        return True
    return (row.get("pricing_confidence") or PricingConfidence.none.value) == PricingConfidence.none.value


class ScrapePricingPass(BasePass):
    """Membership pricing from each practice's own site.

    Tries the landing page, then the common pricing sub-pages, and stops at
    the first page with a price. --force revisits rows that already have
    pricing; merge rules still refuse to lower the stored confidence.
    """

    name = "scrape_pricing"
    title = "Practice pricing scrape"
    delay_seconds = settings.PRICING_DELAY_SECONDS

    def __init__(self, store: ProviderStore, site_fetcher: PracticeSiteFetcher, force: bool = False):
        super().__init__(store)
        self.site_fetcher = site_fetcher
        self.force = force

    async def worklist(self) -> list[dict]:
        return [row for row in await self.store.list_all() if _needs_pricing(row, self.force)]

    async def process(self, item: dict) -> ItemResult:
        candidate = ProviderCandidate(source=SourceName.practice_website, source_id=item["id"])
        landing_text = None
        async with aclosing(self.site_fetcher.pages(item["website"])) as pages:
            async for page in pages:
                if landing_text is None:
                    landing_text = page.text
                pricing = extract_pricing(page.text)
                if pricing.found or (pricing.pricing_notes and not candidate.pricing_notes):
                    candidate.source_url = page.url
                    candidate.monthly_fee = pricing.monthly_fee
                    candidate.child_monthly_fee = pricing.child_monthly_fee
                    candidate.family_fee = pricing.family_fee
                    candidate.enrollment_fee = pricing.enrollment_fee
                    candidate.pricing_tiers = pricing.pricing_tiers
                    candidate.pricing_notes = pricing.pricing_notes
                    candidate.pricing_confidence = pricing.pricing_confidence
                if pricing.found:
                    break

        if landing_text:
            candidate.phone = extract_phone(landing_text)
            emails = extract_emails(landing_text)
            candidate.email = emails[0] if emails else None
            candidate.accepting_patients = extract_accepting_patients(landing_text)

        if candidate.pricing_confidence == PricingConfidence.none and not candidate.pricing_notes:
            raise NoMatchFound("no pricing on site")

        decision = MatchDecision(action=MatchAction.update, provider_id=item["id"])
        result = await save_candidate(self.store, decision, candidate, fill_only=True, existing=item)
        if candidate.monthly_fee is not None:
            result.message = f"${candidate.monthly_fee:g}/mo ({candidate.pricing_confidence.value})"
        return result

    async def remaining(self) -> int | None:
        return sum(1 for row in await self.store.list_all() if _needs_pricing(row, False))
