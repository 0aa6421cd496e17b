"""
Request pipeline composed of plain async middleware functions.

A middleware receives ``(request, context, call_next)`` and either returns a
response without calling ``call_next`` (short-circuit) or awaits it and may
post-process the downstream response. ``create_middleware_chain`` composes a
list of them in front of a terminal handler; ``ChainMiddleware`` mounts such a
chain on the Starlette stack with the ASGI app as the terminal handler.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from functools import partial
from typing import Awaitable, Callable, Optional, Sequence

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from api.middleware.error_handling import error_to_response

Next = Callable[[], Awaitable[Response]]


@dataclass(frozen=True)
class ServerContext:
    """Server-side facts a middleware cannot read from the request itself."""

    trust_forwarded_headers: bool = True
    call_next: Optional[RequestResponseEndpoint] = None

    def request_ip(self, request: Request) -> str:
        """Safely extract client IP, handling proxy headers"""
        if self.trust_forwarded_headers:
            forwarded_for = request.headers.get("X-Forwarded-For")
            if forwarded_for:
                # Take the first IP in the chain (original client)
                return forwarded_for.split(",")[0].strip()

            real_ip = request.headers.get("X-Real-IP")
            if real_ip:
                return real_ip.strip()

        return request.client.host if request.client else "unknown"


Middleware = Callable[[Request, ServerContext, Next], Awaitable[Response]]
TerminalHandler = Callable[[Request, ServerContext], Awaitable[Response]]


def create_middleware_chain(
    middlewares: Sequence[Middleware],
    handler: TerminalHandler,
) -> TerminalHandler:
    """Compose ``middlewares`` (outermost first) in front of ``handler``.

    The returned callable keeps no per-request state and is reused for every
    request. Exceptions are not translated here; they propagate to the caller.
    """
    stages = tuple(middlewares)

    async def run(request: Request, context: ServerContext) -> Response:
        async def dispatch(index: int) -> Response:
            if index >= len(stages):
                return await handler(request, context)
            return await stages[index](request, context, partial(dispatch, index + 1))

        return await dispatch(0)

    return run


async def forward_to_app(request: Request, context: ServerContext) -> Response:
    """Terminal handler handing the request to the wrapped ASGI app (the routers)."""
    if context.call_next is None:
        raise RuntimeError("ServerContext has no downstream app to forward to")
    return await context.call_next(request)


class ChainMiddleware(BaseHTTPMiddleware):
    """Runs the middleware chain in front of the routers and translates errors.

    This is the outermost request boundary: anything raised by a chain stage
    or by the app is converted into a JSON error response exactly here. The
    health path skips the chain entirely.
    """

    def __init__(
        self,
        app: ASGIApp,
        middlewares: Sequence[Middleware],
        context: Optional[ServerContext] = None,
        bypass_paths: Sequence[str] = ("/health",),
    ) -> None:
        super().__init__(app)
        self.context = context or ServerContext()
        self.bypass_paths = frozenset(bypass_paths)
        self.chain = create_middleware_chain(middlewares, forward_to_app)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.bypass_paths:
            return await call_next(request)

        try:
            return await self.chain(request, replace(self.context, call_next=call_next))
        except Exception as e:
            return error_to_response(e, request)
