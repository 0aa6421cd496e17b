import time

from fastapi import Request, Response

from api.middleware.chain import Middleware, Next, ServerContext
from core.logging import get_api_logger_safe
from core.logging.correlation import RequestContext

REQUEST_ID_HEADER = "x-request-id"


def create_request_logging_middleware() -> Middleware:
    """Bind a request id to the logging context and log each request's start and outcome."""
    logger = get_api_logger_safe("api.middleware.request_logging")

    async def request_logging_middleware(request: Request, context: ServerContext, call_next: Next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or RequestContext.generate_request_id()
        RequestContext.set_request_id(request_id)
        request.state.request_id = request_id

        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        ip = context.request_ip(request)
        started = time.perf_counter()

        logger.info("Incoming request", method=request.method, path=path, ip=ip)
        try:
            response = await call_next()
        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                path=path,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                error=str(e),
            )
            raise
        else:
            logger.info(
                "Request completed",
                method=request.method,
                path=path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            RequestContext.clear()

    return request_logging_middleware
