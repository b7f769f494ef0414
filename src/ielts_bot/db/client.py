"""Supabase connection for the Supabase state backend."""

from functools import lru_cache

from supabase import Client, create_client


class MissingCredentialsError(ValueError):
    """Raised when the Supabase URL or service role key is empty."""


@lru_cache()
def get_supabase_client(url: str, service_role_key: str) -> Client:
    """
    Connect to Supabase with the service role key.

    One client is kept per (url, key) pair, so every backend built from
    the same settings shares a connection.

    Raises:
        MissingCredentialsError: If either credential is empty
    """
    if not url or not service_role_key:
        raise MissingCredentialsError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")

    return create_client(supabase_url=url, supabase_key=service_role_key)
