"""Main FastAPI application for the privacy gateway."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from privacy_gateway import __version__
from privacy_gateway.api.endpoints import build_health_router, build_metrics_router
from privacy_gateway.api.resource import GatewayResource
from privacy_gateway.api.router import build_gateway_router
from privacy_gateway.core.config import Settings, get_settings
from privacy_gateway.core.jitter import CacheLifetimeSampler
from privacy_gateway.handlers import (
    DefaultEncapsulationHandler,
    EchoContentHandler,
    EncapsulationHandler,
    TargetProxyHandler,
)
from privacy_gateway.observability import (
    CorrelationIDMiddleware,
    MetricsFactory,
    PrometheusMetricsFactory,
    RequestLoggingMiddleware,
    configure_logging,
    get_logger,
)
from privacy_gateway.observability.constants import LogEvents
from privacy_gateway.ohttp import OHTTPGateway

logger = get_logger(__name__)


def build_gateway(settings: Settings) -> OHTTPGateway:
    """Create the key configuration provider from the configured seed."""
    seed = settings.seed
    if seed is None:
        logger.warning(LogEvents.KEY_CONFIG_GENERATED, key_id=settings.key_id)
        return OHTTPGateway.generate(settings.key_id)
    return OHTTPGateway.from_seed(settings.key_id, seed)


def build_gateway_resource(
    settings: Settings,
    gateway: OHTTPGateway,
    metrics_factory: MetricsFactory,
    target_client: httpx.AsyncClient | None = None,
) -> GatewayResource:
    """Wire the content handlers for the configured paths into a resource."""
    target_handler = TargetProxyHandler(
        allowed_origins=settings.allowed_origins,
        rewrites=settings.target_rewrites,
        timeout=settings.target_timeout,
        client=target_client,
    )
    handlers: dict[str, EncapsulationHandler] = {
        settings.gateway_path: DefaultEncapsulationHandler(
            gateway, settings.key_id, target_handler
        ),
        settings.echo_path: DefaultEncapsulationHandler(
            gateway, settings.key_id, EchoContentHandler()
        ),
    }

    return GatewayResource(
        gateway,
        settings.key_id,
        handlers,
        metrics_factory,
        debug=settings.debug,
        verbose=settings.verbose,
        cache_lifetime=CacheLifetimeSampler(seed=settings.cache_jitter_seed),
        marshal_prefix=settings.marshal_prefix,
    )


def create_app(
    settings: Settings | None = None,
    *,
    gateway: OHTTPGateway | None = None,
    metrics_factory: MetricsFactory | None = None,
    target_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; read from the environment when omitted.
        gateway: Key configuration provider; built from ``settings`` when omitted.
        metrics_factory: Metrics sink; a Prometheus factory when omitted.
        target_client: HTTP client used to reach targets. A client owned by
            the app is created when omitted and closed on shutdown.
    """
    settings = settings or get_settings()
    gateway = gateway or build_gateway(settings)
    metrics_factory = metrics_factory or PrometheusMetricsFactory()

    owns_client = target_client is None
    if target_client is None:
        target_client = httpx.AsyncClient(timeout=settings.target_timeout)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        configure_logging(
            log_level=settings.log_level,
            log_format=settings.log_format,
            development_mode=settings.debug,
            service_name=settings.service_name,
        )
        logger.info(
            LogEvents.APP_STARTUP,
            service=settings.service_name,
            key_id=settings.key_id,
            debug=settings.debug,
            verbose=settings.verbose,
        )

        yield

        if owns_client:
            await target_client.aclose()
        logger.info(LogEvents.APP_SHUTDOWN, service=settings.service_name)

    app = FastAPI(
        title="Privacy Gateway",
        description="Oblivious HTTP gateway: decapsulates relayed requests and "
        "publishes its key configuration.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        redirect_slashes=False,
    )

    # Added in reverse: the correlation ID must be bound before request logging
    app.add_middleware(
        RequestLoggingMiddleware,
        log_request_headers=settings.log_request_headers,
        exclude_paths={settings.health_path, settings.metrics_path},
    )
    app.add_middleware(CorrelationIDMiddleware)

    resource = build_gateway_resource(settings, gateway, metrics_factory, target_client)
    app.state.gateway_resource = resource

    app.include_router(build_gateway_router(resource, settings))
    app.include_router(build_health_router(settings.health_path, settings.service_name))

    registry = getattr(metrics_factory, "registry", None)
    if settings.metrics_enabled and registry is not None:
        app.include_router(build_metrics_router(settings.metrics_path, registry))

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "privacy_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
