import logging
import time
from typing import Any

import httpx
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

_jwks_cache: dict[str, dict[str, Any]] = {}
_jwks_cache_times: dict[str, float] = {}
JWKS_CACHE_TTL = 3600


async def _fetch_jwks(issuer_url: str) -> dict:
    now = time.time()
    cached = _jwks_cache.get(issuer_url)
    cache_time = _jwks_cache_times.get(issuer_url, 0)
    if cached and (now - cache_time) < JWKS_CACHE_TTL:
        return cached

    # Cognito serves its keys at a fixed location under the user pool issuer.
    jwks_url = f"{issuer_url.rstrip('/')}/.well-known/jwks.json"
    async with httpx.AsyncClient(timeout=10) as client:
        resp = await client.get(jwks_url)
        resp.raise_for_status()
        jwks = resp.json()
        _jwks_cache[issuer_url] = jwks
        _jwks_cache_times[issuer_url] = now
        return jwks


async def validate_id_token(
    id_token: str,
    issuer_url: str,
    client_id: str,
) -> dict:
    try:
        jwks = await _fetch_jwks(issuer_url)
    except httpx.HTTPError as e:
        logger.error("Failed to fetch JWKS from %s: %s", issuer_url, e)
        raise ValueError(f"Failed to contact identity provider: {e}") from None

    try:
        payload = jwt.decode(
            id_token,
            jwks,
            algorithms=["RS256"],
            audience=client_id,
            issuer=issuer_url,
            options={
                "verify_exp": True,
                "verify_at_hash": False,
            },
        )
    except JWTError as e:
        raise ValueError(f"Invalid ID token: {e}") from None

    if payload.get("token_use") not in (None, "id"):
        raise ValueError("Token is not an ID token")
    return payload


def read_unverified_claims(id_token: str) -> dict:
    try:
        return jwt.get_unverified_claims(id_token)
    except JWTError as e:
        raise ValueError(f"Malformed ID token: {e}") from None
