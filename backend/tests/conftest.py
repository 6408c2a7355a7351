"""Root conftest: set dummy env vars BEFORE any dpc_enrichment module is imported.

pydantic-settings reads the environment once, when core.config is first
imported, so these must be set here at module level.
"""
import os

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
