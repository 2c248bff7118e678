import time
import requests
import logging
from typing import Optional
from discovery_gateway.core.periodic import PeriodicTask
from discovery_gateway.core.registry import ServiceRegistry
from discovery_gateway.db.models import ServiceInstance, InstanceStatus

def health_url_for(instance: ServiceInstance) -> Optional[str]:
    """Absolute URL to probe, joining relative health paths onto the instance URL."""
    target = instance.health_check_url
    if not target:
        return None
    if target.startswith("http://") or target.startswith("https://"):
        return target
    return f"{instance.url.rstrip('/')}/{target.lstrip('/')}"

class HealthChecker(PeriodicTask):
    """Actively probes instances that registered a health check URL.

    Instances without one rely on heartbeats alone and are never touched.
    """

    def __init__(self, registry: ServiceRegistry, interval: float = 10, timeout: float = 2, retries: int = 1):
        super().__init__(interval, name="health-checker", run_immediately=False)
        self.registry = registry
        self.timeout = timeout
        self.retries = retries
        self.logger = logging.getLogger(__name__)

    def tick(self):
        self._check_all_instances()

    def _check_all_instances(self):
        """Check health of all instances that carry a health check URL."""
        for instance in self.registry.snapshot():
            if instance.health_check_url:
                self._check_instance(instance)

    def _check_instance(self, instance: ServiceInstance):
        """Probe one instance; any 2xx response means healthy."""
        url = health_url_for(instance)
        is_healthy = False

        for attempt in range(self.retries):
            try:
                response = requests.get(url, timeout=self.timeout)
                is_healthy = 200 <= response.status_code < 300
                self.logger.debug(f"Health check for {url} returned {response.status_code}")
                break
            except requests.RequestException as e:
                self.logger.warning(f"Health check failed for {url}: {str(e)}")
                if attempt + 1 < self.retries:
                    time.sleep(1)  # Brief pause between retries

        new_status = InstanceStatus.UP if is_healthy else InstanceStatus.DOWN
        if new_status != instance.status:
            if new_status == InstanceStatus.DOWN:
                self.logger.warning(f"Instance {instance.instance_id} of {instance.service_name} marked as DOWN")
            else:
                self.logger.info(f"Instance {instance.instance_id} of {instance.service_name} marked as UP")
        self.registry.mark_health(instance.service_name, instance.instance_id, is_healthy)
