"""
Database-backed fixed-window rate limiter for the Cloud Code API.

Counters live in the rate_limit_log table so every worker sharing the SQLite
file sees the same numbers.

USAGE PATTERN FOR NEW ENDPOINTS:
================================

    from cloudcode.rate_limiter import RateLimit

    @router.post("/sensitive-endpoint")
    async def my_endpoint(
        user: Dict[str, Any] = Depends(get_current_user),
        _: None = Depends(RateLimit("default")),
    ):
        ...

Declare the rate limit after get_current_user so authenticated callers are
counted per user instead of per IP.

POLICIES:
=========
- default: 100 requests / 60 s (file and project writes)
- ai:       20 requests / 60 s
- auth:     10 requests / 300 s (login, register, refresh)

Storage failures never block a request (fail open).
"""

import logging
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from fastapi import Request, Response

from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import RateLimitExceededError
from cloudcode.db.utils import get_sqlite_connection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    max_requests: int
    window_seconds: int


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after: int = 0

    @property
    def reset_at_iso(self) -> str:
        return datetime.fromtimestamp(self.reset_at, UTC).isoformat()


def policies_from_settings(settings: CloudCodeSettings) -> Dict[str, RateLimitPolicy]:
    return {
        "default": RateLimitPolicy(settings.rate_limit_max_requests, settings.rate_limit_window_seconds),
        "ai": RateLimitPolicy(settings.ai_rate_limit_max_requests, settings.ai_rate_limit_window_seconds),
        "auth": RateLimitPolicy(settings.auth_rate_limit_max_requests, settings.auth_rate_limit_window_seconds),
    }


class DatabaseRateLimiter:
    """
    Fixed-window counter keyed by (client key, endpoint, window start).

    window_start = floor(now / window) * window, so all requests inside the
    same window share one row.

    Usage:
        result = limiter.check("ip:1.2.3.4", "auth", "auth")
        if not result.allowed:
            raise RateLimitExceededError(result.retry_after)
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        policies: Dict[str, RateLimitPolicy],
        clock: Callable[[], float] = time.time
    ):
        self.db_path = db_path
        self.policies = policies
        self.clock = clock

    def check(self, key: str, endpoint: str, policy: str = "default") -> RateLimitResult:
        """
        Count one request and report whether it is within the limit.

        Args:
            key: Client identity ("user:<id>" or "ip:<addr>")
            endpoint: Counter namespace, usually the policy name
            policy: Name of the policy to apply

        Returns:
            RateLimitResult; allowed is True when storage is unavailable
        """
        rule = self.policies.get(policy) or self.policies["default"]
        now = int(self.clock())
        window_start = (now // rule.window_seconds) * rule.window_seconds
        reset_at = window_start + rule.window_seconds

        try:
            conn = get_sqlite_connection(self.db_path)
            try:
                conn.execute(
                    """
                    INSERT INTO rate_limit_log (key, endpoint, window_start, count)
                    VALUES (?, ?, ?, 1)
                    ON CONFLICT(key, endpoint, window_start) DO UPDATE SET count = count + 1
                    """,
                    (key, endpoint, window_start)
                )
                row = conn.execute(
                    "SELECT count FROM rate_limit_log WHERE key = ? AND endpoint = ? AND window_start = ?",
                    (key, endpoint, window_start)
                ).fetchone()
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Rate limit storage error for {key}/{endpoint}, allowing request: {e}")
            return RateLimitResult(
                allowed=True,
                limit=rule.max_requests,
                remaining=rule.max_requests,
                reset_at=reset_at
            )

        count = row["count"] if row else 1
        allowed = count <= rule.max_requests
        result = RateLimitResult(
            allowed=allowed,
            limit=rule.max_requests,
            remaining=max(0, rule.max_requests - count),
            reset_at=reset_at,
            retry_after=0 if allowed else max(1, reset_at - now)
        )

        if not allowed:
            logger.warning(f"Rate limit exceeded: key={key} endpoint={endpoint} count={count}")

        return result

    def cleanup(self, older_than_seconds: int = 3600) -> int:
        """Delete counters whose window started more than older_than_seconds ago."""
        cutoff = int(self.clock()) - older_than_seconds
        conn = get_sqlite_connection(self.db_path)
        try:
            cursor = conn.execute("DELETE FROM rate_limit_log WHERE window_start < ?", (cutoff,))
            conn.commit()
            deleted = cursor.rowcount
        finally:
            conn.close()

        if deleted:
            logger.debug(f"Cleaned up {deleted} stale rate limit rows")
        return deleted


def get_client_ip(request: Request) -> str:
    """Extract client IP, honouring common proxy headers"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value:
            return value.strip()

    return request.client.host if request.client else "unknown"


def get_client_key(request: Request, user_id: Optional[str] = None) -> str:
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_client_ip(request)}"


class RateLimit:
    """
    FastAPI dependency applying a named policy to a route.

    Authenticated routes should resolve get_current_user first; it records the
    user id on request.state, which this dependency prefers over the IP.
    """

    def __init__(self, policy: str = "default", endpoint: Optional[str] = None):
        self.policy = policy
        self.endpoint = endpoint or policy

    async def __call__(self, request: Request, response: Response) -> None:
        limiter: DatabaseRateLimiter = request.app.state.rate_limiter
        key = get_client_key(request, getattr(request.state, "user_id", None))

        result = limiter.check(key, self.endpoint, self.policy)
        if not result.allowed:
            raise RateLimitExceededError(result.retry_after, reset_at=result.reset_at_iso)

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Reset"] = result.reset_at_iso
