"""
In-memory table of backend instances and their health

Only the health checker mutates instance health. Request handlers read
healthy URL lists, which are copied out under the lock.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import threading
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class BackendInstance:
    service: str
    url: str
    healthy: bool = True
    consecutive_failures: int = 0
    consecutive_successes: int = 0
    last_checked: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "healthy": self.healthy,
            "consecutiveFailures": self.consecutive_failures,
            "consecutiveSuccesses": self.consecutive_successes,
            "lastChecked": self.last_checked.isoformat() if self.last_checked else None,
        }


class ServiceRegistry:
    """
    Health table for every configured service instance.

    An instance is dropped from the selectable set after ``unhealthy_threshold``
    consecutive failed checks and restored only after ``healthy_threshold``
    consecutive successful ones. Instances start healthy.
    """

    def __init__(
        self,
        services: Dict[str, List[str]],
        unhealthy_threshold: int = 3,
        healthy_threshold: int = 2,
    ):
        if unhealthy_threshold < 1 or healthy_threshold < 1:
            raise ValueError("Health thresholds must be at least 1")
        self.unhealthy_threshold = unhealthy_threshold
        self.healthy_threshold = healthy_threshold
        self._lock = threading.Lock()
        self._instances: Dict[str, List[BackendInstance]] = {
            service: [BackendInstance(service=service, url=url.rstrip("/")) for url in urls]
            for service, urls in services.items()
        }

    def services(self) -> List[str]:
        return list(self._instances)

    def healthy_urls(self, service: str) -> List[str]:
        with self._lock:
            return [i.url for i in self._instances.get(service, []) if i.healthy]

    def instance_count(self, service: str) -> int:
        return len(self._instances.get(service, []))

    def targets(self) -> List[tuple]:
        """(service, url) pairs to check"""
        return [(i.service, i.url) for instances in self._instances.values() for i in instances]

    def record_check(self, service: str, url: str, ok: bool) -> bool:
        """Apply one check result; returns True if the instance changed state"""
        with self._lock:
            instance = self._find(service, url)
            instance.last_checked = datetime.now(timezone.utc)
            if ok:
                instance.consecutive_failures = 0
                instance.consecutive_successes += 1
                if not instance.healthy and instance.consecutive_successes >= self.healthy_threshold:
                    instance.healthy = True
                    logger.info(
                        f"Instance restored: {url}",
                        event_type="instance_restored",
                        service=service,
                        url=url,
                    )
                    return True
            else:
                instance.consecutive_successes = 0
                instance.consecutive_failures += 1
                if instance.healthy and instance.consecutive_failures >= self.unhealthy_threshold:
                    instance.healthy = False
                    logger.warning(
                        f"Instance marked unhealthy: {url}",
                        event_type="instance_unhealthy",
                        service=service,
                        url=url,
                        consecutive_failures=instance.consecutive_failures,
                    )
                    return True
            return False

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {
                service: {
                    "totalInstances": len(instances),
                    "healthyInstances": sum(1 for i in instances if i.healthy),
                    "instances": [i.as_dict() for i in instances],
                }
                for service, instances in self._instances.items()
            }

    def _find(self, service: str, url: str) -> BackendInstance:
        for instance in self._instances.get(service, []):
            if instance.url == url:
                return instance
        raise KeyError(f"Unknown instance {url} for service {service}")
