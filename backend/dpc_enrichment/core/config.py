from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", extra="ignore")

    # Supabase (canonical provider store). Empty means "not configured";
    # the store factory refuses to start without them.
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    PROVIDERS_TABLE: str = "dpc_providers"
    SOURCES_TABLE: str = "dpc_provider_sources"

    # Identifies us to every external source we touch
    USER_AGENT: str = (
        "DPC-Comparator/1.0 (healthcare cost comparison tool; provider directory research)"
    )

    # External sources
    FRONTIER_BASE_URL: str = "https://mapper.dpcfrontier.com"
    ALLIANCE_BASE_URL: str = "https://www.dpcalliance.org"
    ALLIANCE_DIRECTORY_PATH: str = "/find-a-dpc-physician/"
    SEARCH_URL: str = "https://html.duckduckgo.com/html/"
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org/search"
    NOMINATIM_REVERSE_URL: str = "https://nominatim.openstreetmap.org/reverse"
    ZIPPOPOTAM_URL: str = "https://api.zippopotam.us/us"

    # Rate limits (seconds between calls). Nominatim blocks callers that
    # exceed 1 request/second, so its floor must stay above 1.0.
    NOMINATIM_MIN_INTERVAL: float = 1.2
    ZIPPOPOTAM_MIN_INTERVAL: float = 0.3
    SCRAPE_DELAY_SECONDS: float = 1.5
    SEARCH_DELAY_SECONDS: float = 3.0
    PRICING_DELAY_SECONDS: float = 2.0
    BACKFILL_DELAY_SECONDS: float = 0.3
    # Pause between sub-pages of one practice site
    SUBPAGE_DELAY_SECONDS: float = 1.0

    # Geocoder 429 handling: wait RETRY_DELAY, doubling, at most MAX_RETRIES times
    GEOCODE_RETRY_DELAY_SECONDS: float = 5.0
    GEOCODE_MAX_RETRIES: int = 3

    # Timeouts
    REQUEST_TIMEOUT_SECONDS: float = 20.0
    PAGE_TIMEOUT_SECONDS: float = 30.0

    CHECKPOINT_EVERY: int = 50
    HEADLESS: bool = True


settings = Settings()
