"""Read access to the cafe data kept in Supabase/PostgREST."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import HTTPException
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from cafe_analytics.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL, get_supabase_client

logger = logging.getLogger(__name__)

QueryBuilder = Callable[[Any], Any]

BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}

# PostgREST reports row-level security and JWT failures with its own codes
# rather than HTTP statuses.
POSTGREST_CODE_STATUS = {
    "42501": 403,
    "PGRST116": 404,
    "PGRST301": 401,
    "PGRST302": 401,
}
STATUS_DETAILS = {
    401: "Your session is no longer valid.",
    403: "Access to the requested analytics is denied.",
    404: "The requested analytics data was not found.",
}
UPSTREAM_FAILURE = "The analytics store returned an error."


def extract_bearer_token(header_value: Optional[str]) -> str:
    """Return the token of an ``Authorization: Bearer <token>`` header or answer 401."""

    scheme, _, token = (header_value or "").strip().partition(" ")
    if not scheme:
        raise HTTPException(status_code=401, detail="Sign in to view analytics.", headers=BEARER_CHALLENGE)
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise HTTPException(status_code=401, detail="Malformed bearer token.", headers=BEARER_CHALLENGE)
    return token


def token_claims(access_token: str) -> Dict[str, Any]:
    """Decode the payload of a Supabase JWT.

    The signature is not checked here: every query made with the token goes
    through PostgREST, which rejects forged tokens.
    """

    try:
        payload_segment = access_token.split(".")[1]
        padding = "=" * (-len(payload_segment) % 4)
        decoded = base64.urlsafe_b64decode((payload_segment + padding).encode("ascii"))
        claims = json.loads(decoded.decode("utf-8"))
    except (IndexError, ValueError, UnicodeError) as exc:
        raise HTTPException(status_code=401, detail="Malformed bearer token.", headers=BEARER_CHALLENGE) from exc
    if not isinstance(claims, dict):
        raise HTTPException(status_code=401, detail="Malformed bearer token.", headers=BEARER_CHALLENGE)
    return claims


def token_email(access_token: str) -> Optional[str]:
    email = token_claims(access_token).get("email")
    if not isinstance(email, str) or not email.strip():
        return None
    return email.strip().lower()


def create_postgrest_client(access_token: str) -> SyncPostgrestClient:
    """PostgREST client acting as the caller, so row-level security applies."""

    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise HTTPException(status_code=500, detail="Supabase is not configured.")

    client = SyncPostgrestClient(
        f"{SUPABASE_URL.rstrip('/')}/rest/v1",
        headers={"apikey": SUPABASE_ANON_KEY, "Accept": "application/json"},
    )
    client.auth(access_token)
    return client


def postgrest_status(exc: PostgrestAPIError) -> int:
    """HTTP status to answer with for a PostgREST error, 502 when unknown."""

    code = str(exc.code or "").strip()
    if code in POSTGREST_CODE_STATUS:
        return POSTGREST_CODE_STATUS[code]
    if code.isdigit() and 400 <= int(code) < 600:
        return int(code)
    return 502


def map_postgrest_error(exc: PostgrestAPIError, *, context: str) -> HTTPException:
    status_code = postgrest_status(exc)
    logger.error("%s failed (%s, code=%s): %s", context, status_code, exc.code, exc.message)
    return HTTPException(status_code=status_code, detail=STATUS_DETAILS.get(status_code, UPSTREAM_FAILURE))


async def fetch_rows(access_token: str, build: QueryBuilder, *, context: str) -> List[Dict[str, Any]]:
    """Run a read query with the caller's token, row-level security applies."""

    def _request() -> List[Dict[str, Any]]:
        with create_postgrest_client(access_token) as client:
            response = build(client).execute()
            return response.data or []

    return await _run_query(_request, context=context)


async def fetch_service_rows(build: QueryBuilder, *, context: str) -> List[Dict[str, Any]]:
    """Run a read query with the service-role Supabase client (all tenants).

    Callers must have checked the caller's rights first.
    """

    client = get_supabase_client()
    if client is None:
        raise HTTPException(status_code=500, detail="Supabase is not configured.")

    def _request() -> List[Dict[str, Any]]:
        response = build(client).execute()
        return response.data or []

    return await _run_query(_request, context=context)


async def _run_query(request: Callable[[], List[Dict[str, Any]]], *, context: str) -> List[Dict[str, Any]]:
    try:
        return await asyncio.to_thread(request)
    except PostgrestAPIError as exc:
        raise map_postgrest_error(exc, context=context) from exc
    except HttpxError as exc:  # pragma: no cover - network interaction
        logger.error("Supabase unreachable during %s: %s", context, exc)
        raise HTTPException(status_code=503, detail="Supabase is temporarily unavailable.") from exc


__all__ = [
    "create_postgrest_client",
    "extract_bearer_token",
    "fetch_rows",
    "fetch_service_rows",
    "map_postgrest_error",
    "postgrest_status",
    "token_claims",
    "token_email",
]
