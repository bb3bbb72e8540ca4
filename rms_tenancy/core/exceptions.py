"""
Error taxonomy for the tenant isolation boundary

Every error carries the HTTP status it maps to, so routers can raise domain
errors and a single handler renders them.
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger(__name__)


class RMSError(Exception):
    """Base application error"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(RMSError):
    """Bad input"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class ConflictError(RMSError):
    """Duplicate registration"""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class TenantNotFoundError(RMSError):
    """Tenant is unknown or deactivated"""

    status_code = status.HTTP_404_NOT_FOUND
    code = "TENANT_NOT_FOUND"

    def __init__(self, tenant_id: Any):
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id


class ResourceNotFoundError(RMSError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found: {resource_id}" if resource_id else f"{resource} not found"
        super().__init__(message)


class RouteNotFoundError(RMSError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "ROUTE_NOT_FOUND"

    def __init__(self, path: str, available_routes: List[str]):
        super().__init__(f"Route not found: {path}", {"availableRoutes": available_routes})


class UnauthorizedError(RMSError):
    """No identity, or an identity without a tenant claim"""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized access", details: Optional[Any] = None):
        super().__init__(message, details)


class ForbiddenError(RMSError):
    """Cross-tenant access attempt or missing role"""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "Access forbidden", details: Optional[Any] = None):
        super().__init__(message, details)


class PlanLimitExceededError(ForbiddenError):
    code = "PLAN_LIMIT_EXCEEDED"


class DatabaseError(RMSError):
    """DDL/DML failure"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "DATABASE_ERROR"


class ServiceUnavailable(RMSError):
    """No healthy backend instance for a logical service"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "SERVICE_UNAVAILABLE"

    def __init__(self, service_name: str, message: Optional[str] = None):
        super().__init__(
            message or f"Service temporarily unavailable: {service_name}",
            {"service": service_name},
        )
        self.service_name = service_name


async def rms_error_handler(request: Request, exc: RMSError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            code=exc.code,
            message=exc.message,
            path=request.url.path,
        )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(
        "Validation failed",
        [
            {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
            for err in exc.errors()
        ],
    )
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    """Render every RMSError (and pydantic request errors) with its mapped status"""
    app.add_exception_handler(RMSError, rms_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
