"""
Periodic liveness checks for backend instances
"""

import asyncio
from typing import Optional

import httpx
import structlog

from rms_tenancy.gateway.registry import ServiceRegistry

logger = structlog.get_logger(__name__)


class HealthChecker:
    """The only writer of instance health in the service registry"""

    def __init__(
        self,
        registry: ServiceRegistry,
        client: httpx.AsyncClient,
        path: str = "/health",
        interval: float = 10.0,
        timeout: float = 2.0,
    ):
        self.registry = registry
        self.client = client
        self.path = path
        self.interval = interval
        self.timeout = timeout
        self._task: Optional[asyncio.Task] = None

    async def check_instance(self, service: str, url: str) -> bool:
        try:
            response = await self.client.get(f"{url}{self.path}", timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.debug(f"Health check failed for {url}: {e}", service=service)
            return False
        return response.is_success

    async def check_once(self) -> None:
        targets = self.registry.targets()
        results = await asyncio.gather(
            *(self.check_instance(service, url) for service, url in targets)
        )
        for (service, url), ok in zip(targets, results):
            self.registry.record_check(service, url, ok)

    async def run(self) -> None:
        # Instances start healthy, so the first round waits one interval
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.check_once()
            except Exception as e:
                logger.error(f"Health check round failed: {e}")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run())
            logger.info("Health checker started", interval=self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Health checker stopped")
