from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from skillcheck.core.config import settings
from skillcheck.core.redis_client import get_redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimit:
    key: str
    limit: int
    window_seconds: int


def _client_ip(request: Request) -> str:
    if bool(settings.trust_proxy_headers):
        xri = str(request.headers.get("x-real-ip") or "").strip()
        if xri:
            return xri
        xff = request.headers.get("x-forwarded-for")
        if xff:
            ip = xff.split(",")[0].strip()
            if ip:
                return ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _subject(request: Request) -> str:
    # Authenticated routes resolve the user first; fall back to the client address.
    uid = getattr(getattr(request, "state", None), "user_id", None)
    if uid:
        return f"u:{uid}"
    return f"ip:{_client_ip(request)}"


def rate_limit(*, key_prefix: str, limit: int | Callable[[], int], window_seconds: int = 60):
    async def _dep(request: Request) -> RateLimit:
        eff_limit = int(limit() if callable(limit) else limit)
        key = f"rl:{key_prefix}:{_subject(request)}"

        try:
            r = get_redis()
            current = r.incr(key)
            if current == 1:
                r.expire(key, int(window_seconds))
        except Exception:
            logger.warning("rate limiter unavailable, allowing request key=%s", key)
            return RateLimit(key=key, limit=eff_limit, window_seconds=int(window_seconds))

        if int(current) > eff_limit:
            ttl = r.ttl(key)
            retry_after = int(ttl) if ttl and ttl > 0 else int(window_seconds)
            raise HTTPException(
                status_code=429,
                detail="rate limit exceeded",
                headers={"Retry-After": str(retry_after)},
            )

        return RateLimit(key=key, limit=eff_limit, window_seconds=int(window_seconds))

    return Depends(_dep)
