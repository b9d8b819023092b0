"""
Supabase client configuration.

The pipeline only talks to Supabase from trusted backend code, so it uses the
service role key (bypasses RLS).
"""

from supabase import create_client, Client

from content_engine.config import Settings


def get_service_client(settings: Settings) -> Client:
    """
    Get a Service Role client.

    Raises:
        ConfigError: SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is missing
    """
    settings.require_vector_store()
    return create_client(settings.supabase_url, settings.supabase_key)
