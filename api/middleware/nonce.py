"""
Replay guard.

Every request under the protected prefix must carry a fresh nonce header.
A nonce is accepted once and remembered for ``ttl_ms``; resubmitting it
inside that window is rejected. Once the entry has expired the nonce is
accepted again.
"""

from dataclasses import dataclass

from fastapi import Request, Response

from api.middleware.chain import Middleware, Next, ServerContext
from core.logging import get_audit_logger_safe
from core.storage import InMemoryStorageWithTTL
from core.utils.exceptions import DuplicateNonceError, MissingNonceError


@dataclass(frozen=True)
class NonceRecord:
    timestamp: float
    path: str
    method: str
    ip: str


def create_nonce_middleware(
    nonce_storage: InMemoryStorageWithTTL,
    ttl_ms: int = 300_000,
    header_name: str = "x-nonce",
    protected_prefix: str = "/api",
    health_path: str = "/health",
) -> Middleware:
    logger = get_audit_logger_safe("api.middleware.nonce")

    async def nonce_middleware(request: Request, context: ServerContext, call_next: Next) -> Response:
        path = request.url.path
        if path == health_path or not path.startswith(protected_prefix):
            return await call_next()

        ip = context.request_ip(request)
        nonce = (request.headers.get(header_name) or "").strip()

        if not nonce:
            logger.warning("Missing nonce header", path=path, method=request.method, ip=ip)
            raise MissingNonceError()

        # Check and store under the store lock so two threads cannot both accept a nonce
        with nonce_storage.lock:
            # get() drops an entry whose TTL has passed, so an expired nonce reads as unseen
            if nonce_storage.get(nonce) is not None:
                logger.warning(
                    "Replay attack detected - duplicate nonce",
                    nonce=nonce,
                    path=path,
                    method=request.method,
                    ip=ip,
                )
                raise DuplicateNonceError(nonce)

            record = NonceRecord(
                timestamp=nonce_storage.clock(),
                path=path,
                method=request.method,
                ip=ip,
            )
            nonce_storage.set_with_ttl(nonce, record, ttl_ms)

        logger.debug("Nonce validated and stored", nonce=nonce, path=path)
        return await call_next()

    return nonce_middleware
