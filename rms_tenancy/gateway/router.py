"""
Tenant-aware request dispatch

Resolves the logical service from the URL prefix, picks a healthy instance
round-robin and forwards the request. On protected routes the tenant header
is always rebuilt from the verified token; whatever the caller sent under
that name is dropped.
"""

import itertools
from typing import Dict, Iterable, List, Optional, Tuple
import uuid

from fastapi import Request, Response
import httpx
import structlog

from rms_tenancy.core.auth import identity_from_token
from rms_tenancy.core.exceptions import RouteNotFoundError, ServiceUnavailable
from rms_tenancy.core.tenant_context import Identity
from rms_tenancy.gateway.registry import ServiceRegistry

logger = structlog.get_logger(__name__)

# Never forwarded in either direction
HOP_BY_HOP_HEADERS = frozenset(
    [
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
    ]
)


def _normalize_path(path: str) -> str:
    return path.rstrip("/") or "/"


class GatewayRouter:
    def __init__(
        self,
        registry: ServiceRegistry,
        client: httpx.AsyncClient,
        routes: Dict[str, str],
        public_paths: Iterable[str] = (),
        tenant_header: str = "x-tenant-id",
        request_id_header: str = "x-request-id",
    ):
        unknown = set(routes.values()) - set(registry.services())
        if unknown:
            raise ValueError(f"Routes point at unconfigured services: {sorted(unknown)}")

        self.registry = registry
        self.client = client
        self.routes = {_normalize_path(prefix): service for prefix, service in routes.items()}
        self.public_paths = {self._public_key(*entry.split(" ", 1)) for entry in public_paths}
        self.tenant_header = tenant_header.lower()
        self.request_id_header = request_id_header.lower()
        self._cursors = {service: itertools.count() for service in registry.services()}

    @staticmethod
    def _public_key(method: str, path: str) -> str:
        return f"{method.strip().upper()} {_normalize_path(path.strip())}"

    @property
    def available_routes(self) -> List[str]:
        return sorted(self.routes)

    def resolve_service(self, path: str) -> Optional[Tuple[str, str]]:
        """Longest configured prefix matching whole path segments"""
        path = _normalize_path(path)
        matches = [
            prefix for prefix in self.routes
            if path == prefix or path.startswith(prefix + "/")
        ]
        if not matches:
            return None
        prefix = max(matches, key=len)
        return prefix, self.routes[prefix]

    def is_public(self, method: str, path: str) -> bool:
        return self._public_key(method, path) in self.public_paths

    def select_instance(self, service: str) -> str:
        urls = self.registry.healthy_urls(service)
        if not urls:
            logger.warning(f"No healthy instance for {service}", event_type="no_healthy_instance", service=service)
            raise ServiceUnavailable(service)
        return urls[next(self._cursors[service]) % len(urls)]

    def identity_from(self, request: Request) -> Identity:
        authorization = request.headers.get("authorization", "")
        scheme, _, token = authorization.partition(" ")
        return identity_from_token(token.strip() if scheme.lower() == "bearer" else None)

    def forward_headers(
        self,
        request: Request,
        request_id: str,
        identity: Optional[Identity],
    ) -> Dict[str, str]:
        headers = {
            name: value
            for name, value in request.headers.items()
            if name.lower() not in HOP_BY_HOP_HEADERS
            and name.lower() not in (self.tenant_header, self.request_id_header)
        }
        headers[self.request_id_header] = request_id

        supplied = request.headers.get(self.tenant_header)
        if identity is not None and identity.tenant_id is not None:
            if supplied and supplied != str(identity.tenant_id):
                logger.warning(
                    "Caller-supplied tenant header overridden",
                    event_type="cross_tenant_attempt",
                    supplied_tenant_id=supplied,
                    token_tenant_id=str(identity.tenant_id),
                    user_id=identity.user_id,
                    path=request.url.path,
                )
            headers[self.tenant_header] = str(identity.tenant_id)
        return headers

    async def route(self, request: Request) -> Response:
        path = request.url.path
        request_id = request.headers.get(self.request_id_header) or str(uuid.uuid4())

        resolved = self.resolve_service(path)
        if resolved is None:
            logger.warning(f"Route not found: {request.method} {path}", request_id=request_id)
            raise RouteNotFoundError(path, self.available_routes)
        _, service = resolved

        identity = None
        if not self.is_public(request.method, path):
            identity = self.identity_from(request)

        base_url = self.select_instance(service)
        upstream = self.client.build_request(
            request.method,
            f"{base_url}{path}",
            params=request.query_params.multi_items(),
            headers=self.forward_headers(request, request_id, identity),
            content=await request.body(),
        )

        logger.debug(
            f"Proxying {request.method} {path}",
            service=service,
            upstream=base_url,
            request_id=request_id,
            tenant_id=str(identity.tenant_id) if identity and identity.tenant_id else None,
        )
        try:
            upstream_response = await self.client.send(upstream)
        except httpx.RequestError as e:
            logger.error(
                f"Proxy error for {service}: {e}",
                method=request.method,
                path=path,
                request_id=request_id,
            )
            raise ServiceUnavailable(service)

        response_headers = {
            name: value
            for name, value in upstream_response.headers.items()
            if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() != "content-encoding"
        }
        response_headers[self.request_id_header] = request_id
        return Response(
            content=upstream_response.content,
            status_code=upstream_response.status_code,
            headers=response_headers,
        )
