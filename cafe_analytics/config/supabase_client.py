"""Supabase client configuration and runtime settings."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from supabase import Client, create_client

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

ANALYTICS_TIMEZONE = os.getenv("ANALYTICS_TIMEZONE", "UTC")
REPORT_CACHE_TTL_SECONDS = int(os.getenv("REPORT_CACHE_TTL_SECONDS", "300"))
REPORT_CACHE_MAX_ENTRIES = int(os.getenv("REPORT_CACHE_MAX_ENTRIES", "256"))
BASIC_PLAN_PRICE = int(os.getenv("BASIC_PLAN_PRICE", "2000"))
PRO_PLAN_PRICE = int(os.getenv("PRO_PLAN_PRICE", "5000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[Client]:
    """Instantiate the Supabase client if credentials are configured."""
    api_key = SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY
    if not SUPABASE_URL or not api_key:
        return None
    return create_client(SUPABASE_URL, api_key)


__all__ = [
    "ANALYTICS_TIMEZONE",
    "BASIC_PLAN_PRICE",
    "LOG_LEVEL",
    "PRO_PLAN_PRICE",
    "REPORT_CACHE_MAX_ENTRIES",
    "REPORT_CACHE_TTL_SECONDS",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_URL",
    "get_supabase_client",
]
