"""
Registrar - Supabase Client.

Low-level access to the Supabase project that backs one-time-code
verification (Supabase Auth) and the agent registry tables.
"""

from supabase import Client, create_client

from registrar.config import settings

# Singleton client instance
_client: Client | None = None


def get_client() -> Client:
    """
    Get the Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        if not settings.supabase_url or not settings.supabase_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        _client = create_client(
            settings.supabase_url,
            settings.supabase_key,
        )

    return _client
