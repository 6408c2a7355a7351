from supabase import AsyncClient, acreate_client

from dpc_enrichment.core.config import settings
from dpc_enrichment.core.errors import FatalSetupFailure


async def create_client() -> AsyncClient:
    """Build a Supabase client for one pipeline run.

    Each run owns its client; nothing is cached at module level.

    Raises:
        FatalSetupFailure: if credentials are missing or the client cannot
            be constructed.
    """
    missing = [
        name
        for name, value in (
            ("SUPABASE_URL", settings.SUPABASE_URL),
            ("SUPABASE_SERVICE_KEY", settings.SUPABASE_SERVICE_KEY),
        )
        if not value
    ]
    if missing:
        raise FatalSetupFailure(f"Missing environment variables: {', '.join(missing)}")

    try:
        # Service role key bypasses RLS; the pipeline only ever writes
        # provider rows and their source attribution.
        return await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
    except Exception as exc:
        raise FatalSetupFailure(f"Could not create Supabase client: {exc}") from exc
