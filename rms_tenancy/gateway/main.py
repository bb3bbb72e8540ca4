"""
RMS API Gateway - single entry point for the restaurant platform services
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import httpx
import structlog

from rms_tenancy import __version__
from rms_tenancy.core.config import Settings, get_settings
from rms_tenancy.core.exceptions import register_exception_handlers
from rms_tenancy.core.logging_config import setup_logging
from rms_tenancy.gateway.health import HealthChecker
from rms_tenancy.gateway.registry import ServiceRegistry
from rms_tenancy.gateway.router import GatewayRouter

logger = structlog.get_logger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    start_checker: bool = True,
) -> FastAPI:
    """Build the gateway; ``transport`` replaces the network for upstreams and checks"""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Initializing API gateway", services=len(settings.GATEWAY_SERVICES))
        client = httpx.AsyncClient(transport=transport, timeout=settings.UPSTREAM_TIMEOUT_SECONDS)
        registry = ServiceRegistry(
            settings.GATEWAY_SERVICES,
            unhealthy_threshold=settings.UNHEALTHY_THRESHOLD,
            healthy_threshold=settings.HEALTHY_THRESHOLD,
        )
        checker = HealthChecker(
            registry,
            client,
            path=settings.HEALTH_CHECK_PATH,
            interval=settings.HEALTH_CHECK_INTERVAL_SECONDS,
            timeout=settings.HEALTH_CHECK_TIMEOUT_SECONDS,
        )
        app.state.registry = registry
        app.state.checker = checker
        app.state.gateway = GatewayRouter(
            registry,
            client,
            routes=settings.GATEWAY_ROUTES,
            public_paths=settings.GATEWAY_PUBLIC_PATHS,
            tenant_header=settings.TENANT_HEADER,
            request_id_header=settings.REQUEST_ID_HEADER,
        )
        if start_checker:
            checker.start()

        yield

        await checker.stop()
        await client.aclose()
        logger.info("Shutting down API gateway")

    app = FastAPI(
        title="RMS API Gateway",
        description="Tenant-aware routing to the restaurant platform services",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health")
    async def health_check(request: Request):
        """Gateway health with per-service instance statistics"""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": request.app.state.registry.snapshot(),
        }

    @app.get("/services")
    async def list_services(request: Request):
        """Route prefixes and the healthy instance count behind each"""
        registry: ServiceRegistry = request.app.state.registry
        services = {}
        for prefix, service in request.app.state.gateway.routes.items():
            healthy = len(registry.healthy_urls(service))
            services[prefix] = {
                "service": service,
                "healthyInstances": healthy,
                "totalInstances": registry.instance_count(service),
                "status": "available" if healthy else "unavailable",
            }
        return {"services": services}

    @app.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    async def proxy(request: Request):
        return await request.app.state.gateway.route(request)

    return app


def build_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.DEBUG)
    return create_app(settings)


app = build_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "rms_tenancy.gateway.main:app",
        host="0.0.0.0",
        port=3000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
