"""Request guards shared by routers - worker token and per-client rate limits."""
import hmac

from fastapi import Header, HTTPException, Request

from ..config import settings
from ..services.rate_limiter import rate_limiter

RATE_LIMIT_WINDOW_MS = 60_000


def client_ip(request: Request) -> str:
    """First hop in x-forwarded-for, else the socket peer, else 'unknown'."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(purpose: str, max_per_minute: int):
    """Build a dependency that allows max_per_minute requests per client for purpose."""

    async def dependency(request: Request):
        decision = rate_limiter.take(f"{purpose}:{client_ip(request)}", max_per_minute, RATE_LIMIT_WINDOW_MS)
        if not decision.allowed:
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded",
                headers={"Retry-After": str(decision.retry_after_seconds)},
            )

    return dependency


async def require_worker_token(x_worker_token: str = Header(default="")):
    """Reject callers that do not present the configured worker token."""
    if not hmac.compare_digest(x_worker_token.encode(), settings.worker_token.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
