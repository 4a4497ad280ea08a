"""Supabase client construction."""

from typing import Optional

from supabase import Client, create_client


def get_supabase_client(url: Optional[str], key: Optional[str]) -> Client:
    """Get Supabase client instance.

    Raises:
        RuntimeError: If Supabase credentials are not configured.
    """
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set in environment")

    return create_client(url, key)
