"""
RMS Tenant Service - Main Application Entry Point
Tenant registry, schema provisioning and tenant-scoped access
"""

from contextlib import asynccontextmanager
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import structlog

from rms_tenancy import __version__
from rms_tenancy.api import admin, auth, outlets, tenants
from rms_tenancy.core.config import get_settings
from rms_tenancy.core.exceptions import register_exception_handlers
from rms_tenancy.core.logging_config import setup_logging

settings = get_settings()
setup_logging(settings.DEBUG)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Initializing {settings.APP_NAME}", environment=settings.ENVIRONMENT)
    # The registry table is created by Alembic migrations; tenant schemas by the provisioner
    logger.info("Database managed by Alembic migrations")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")


app = FastAPI(
    title="RMS Tenant Service API",
    description="Schema-per-tenant registry and provisioning for the restaurant management platform",
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


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    """Reuse the gateway's request id (or mint one) for every log line of the request"""
    request_id = request.headers.get(settings.REQUEST_ID_HEADER) or str(uuid.uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers[settings.REQUEST_ID_HEADER] = request_id
    return response


register_exception_handlers(app)

app.include_router(tenants.router, prefix=f"{settings.API_V1_PREFIX}/tenants", tags=["tenants"])
app.include_router(
    outlets.router,
    prefix=f"{settings.API_V1_PREFIX}/tenants/{{tenant_id}}/outlets",
    tags=["outlets"],
)
app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
app.include_router(admin.router, prefix=f"{settings.API_V1_PREFIX}/admin", tags=["admin"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "tenant-service"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": settings.APP_NAME,
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "rms_tenancy.main:app",
        host="0.0.0.0",
        port=3001,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
