import uvicorn
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from dependency_injector import providers
from fastapi import FastAPI

from app.containers import AppContainer
from api.middleware.chain import ChainMiddleware, Middleware, ServerContext
from api.middleware.cors import create_cors_middleware
from api.middleware.error_handling import register_exception_handlers
from api.middleware.nonce import create_nonce_middleware
from api.middleware.rate_limiting import create_rate_limit_middleware
from api.middleware.request_logging import create_request_logging_middleware
from api.routers import broker_activity, brokers, config, emiten
from api.schemas.responses import HealthResponse
from core.config.settings import Settings
from core.logging import configure_logging, get_api_logger_safe

logger = get_api_logger_safe("api.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    container: AppContainer = app.state.container
    settings = container.settings()
    logger.info(
        "Starting Broker Radar API server",
        environment=settings.environment.value,
        mock=settings.is_mock_enabled(),
    )

    yield

    # Shutdown
    logger.info("Shutting down Broker Radar API server")
    for store in container.expiring_stores():
        store.stop_cleanup()
    await container.stockbit_client().close()


def _build_uvicorn_log_config() -> dict:
    """Return a minimal log config that cooperates with our structlog handlers.

    Only levels and propagation are set; handlers stay as wired by the
    logger manager.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "loggers": {
            "uvicorn": {"level": "INFO", "propagate": False},
            "uvicorn.error": {"level": "INFO", "propagate": False},
            "uvicorn.access": {"level": "INFO", "propagate": False},
            "fastapi": {"level": "INFO", "propagate": False},
        },
    }


def build_middlewares(container: AppContainer) -> List[Middleware]:
    """Chain stages, outermost first"""
    settings = container.settings()
    middlewares: List[Middleware] = [
        create_cors_middleware(settings.api),
        create_request_logging_middleware(),
    ]
    if settings.nonce.enabled:
        middlewares.append(create_nonce_middleware(
            container.nonce_storage(),
            ttl_ms=settings.nonce.ttl_ms,
            header_name=settings.nonce.header_name,
            protected_prefix=settings.nonce.protected_prefix,
            health_path=settings.api.health_path,
        ))
    if settings.rate_limit.enabled:
        middlewares.append(create_rate_limit_middleware(
            container.rate_limiter(),
            protected_prefix=settings.api.prefix,
        ))
    return middlewares


def create_app(settings: Optional[Settings] = None, container: Optional[AppContainer] = None) -> FastAPI:
    """Creates and configures the FastAPI application"""
    container = container or AppContainer()
    if settings is not None:
        container.settings.override(providers.Object(settings))
    settings = container.settings()

    # Configure logging for API context (idempotent)
    configure_logging(settings)

    app = FastAPI(
        title=f"{settings.app_name} API",
        version=settings.version,
        description="Broker accumulation and distribution analytics over the Stockbit market detector data.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.container = container

    # Wire dependency injection
    container.wire(modules=["api.dependencies"])

    register_exception_handlers(app)
    app.add_middleware(
        ChainMiddleware,
        middlewares=build_middlewares(container),
        context=ServerContext(),
        bypass_paths=(settings.api.health_path,),
    )

    prefix = settings.api.prefix
    app.include_router(brokers.router, prefix=prefix)
    app.include_router(broker_activity.router, prefix=prefix)
    app.include_router(emiten.router, prefix=prefix)
    app.include_router(config.router, prefix=prefix)

    @app.get(settings.api.health_path, response_model=HealthResponse, tags=["Health"])
    def health_check():
        return HealthResponse(status="ok", timestamp=datetime.now().astimezone().isoformat())

    return app


def run(settings: Optional[Settings] = None):
    """Main function to run the API server"""
    app = create_app(settings)
    settings = app.state.container.settings()
    uvicorn.run(
        app,
        host=settings.api.host,
        port=settings.resolve_port(),
        log_level=settings.logging.level.lower(),
        access_log=True,
        log_config=_build_uvicorn_log_config(),
    )


if __name__ == "__main__":
    run()
