from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from slowapi.errors import RateLimitExceeded
from fastapi.responses import JSONResponse

from swipehire.core.settings import Settings


def client_ip(request: Request) -> str:
    # Behind Cloudflare the real client address arrives in CF-Connecting-IP
    return request.headers.get("CF-Connecting-IP") or get_remote_address(request)


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=client_ip,
        default_limits=[settings.rate_limit_default],
        enabled=settings.rate_limit_enabled,
    )

async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"error": "Rate limit exceeded"})
