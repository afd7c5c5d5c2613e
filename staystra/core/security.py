import hashlib
import logging
from fastapi import Header, HTTPException, Request
from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
)
from datetime import datetime, timezone
from .config import settings
from .cache import cache

logger = logging.getLogger(__name__)

def _digest(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()

async def require_api_key(request: Request, x_api_key: str | None = Header(default=None, alias="x-api-key")):
    """
    Header-based API key check against the configured key store
    (ss_api_keys table, or the static API_KEY in dev). Verified keys are
    remembered for CACHE_TTL_SECONDS so hot clients don't hit the DB on
    every call.
    """
    store = request.app.state.deps.api_keys
    if store is None:
        # No key source configured: allow (dev convenience).
        return
    if not x_api_key:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="API key required")

    cache_key = "apikey:" + _digest(x_api_key)
    cached = cache.get(cache_key)
    if cached is not None:
        request.state.api_key_id = cached
        return

    try:
        key_id = await store.lookup(x_api_key)
    except Exception:
        logger.exception("API key lookup failed")
        raise HTTPException(status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail="Auth error")
    if key_id is None:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Invalid API key")

    cache.set(cache_key, str(key_id))
    request.state.api_key_id = str(key_id)

def rate_limit(request: Request):
    """
    Fixed-window limiter: at most RATE_LIMIT_RPM calls per caller per UTC
    minute. A caller is the API key digest plus client IP. Counting is one
    atomic INCR per request.
    """
    limit = max(1, settings.RATE_LIMIT_RPM)
    caller = _digest(request.headers.get("x-api-key") or "anon")
    client_ip = request.client.host if request.client else "unknown"
    window = datetime.now(timezone.utc).strftime("%Y%m%d%H%M")

    hits = cache.incr(f"rate:{caller}:{client_ip}:{window}")
    if hits > limit:
        logger.warning("Rate limit hit for %s (%d calls in window %s)", client_ip, hits, window)
        raise HTTPException(status_code=HTTP_429_TOO_MANY_REQUESTS, detail="Rate limit exceeded")
