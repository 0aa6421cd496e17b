import math

from fastapi import Request, Response

from api.middleware.chain import Middleware, Next, ServerContext
from core.logging import get_api_logger_safe
from core.storage.helpers import RateLimiter
from core.utils.exceptions import RateLimitExceededError


def create_rate_limit_middleware(rate_limiter: RateLimiter, protected_prefix: str = "/api") -> Middleware:
    """Per-client sliding-window rate limiting backed by the rate-limit TTL store"""
    logger = get_api_logger_safe("rate_limiting")
    window_seconds = math.ceil(rate_limiter.window_ms / 1000)

    async def rate_limit_middleware(request: Request, context: ServerContext, call_next: Next) -> Response:
        if not request.url.path.startswith(protected_prefix):
            return await call_next()

        client_ip = context.request_ip(request)
        if not rate_limiter.is_allowed(client_ip):
            reset_at = rate_limiter.get_reset_time(client_ip)
            retry_after = window_seconds
            if reset_at is not None:
                retry_after = max(1, math.ceil((reset_at - rate_limiter.storage.clock()) / 1000))
            logger.warning("Rate limit exceeded", ip=client_ip, path=request.url.path, retry_after=retry_after)
            raise RateLimitExceededError(
                f"Rate limit exceeded: {rate_limiter.max_requests} requests per {window_seconds} seconds",
                retry_after=retry_after,
            )

        response = await call_next()
        response.headers["X-RateLimit-Limit"] = str(rate_limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(rate_limiter.get_remaining(client_ip))
        return response

    return rate_limit_middleware
