from typing import Dict

from fastapi import Request, Response

from api.middleware.chain import Middleware, Next, ServerContext
from core.config.settings import APISettings


def build_cors_headers(api_settings: APISettings) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": ", ".join(api_settings.cors_origins),
        "Access-Control-Allow-Methods": ", ".join(api_settings.cors_methods),
        "Access-Control-Allow-Headers": ", ".join(api_settings.cors_headers),
    }


def create_cors_middleware(api_settings: APISettings) -> Middleware:
    """Answer preflight requests directly and stamp CORS headers on every other response."""
    cors_headers = build_cors_headers(api_settings)

    async def cors_middleware(request: Request, context: ServerContext, call_next: Next) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=cors_headers)

        response = await call_next()
        for name, value in cors_headers.items():
            response.headers[name] = value
        return response

    return cors_middleware
