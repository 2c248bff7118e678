from typing import Optional, List, Dict, Any
from discovery_gateway.client.base import DiscoveryClient
from discovery_gateway.core.registry import ServiceRegistry
from discovery_gateway.errors import DiscoveryError

class LocalDiscoveryClient(DiscoveryClient):
    """Embeds a registry in-process, e.g. for a gateway and registry sharing one process."""

    def __init__(self, registry: ServiceRegistry):
        self.registry = registry

    def register(self, service: str, url: str, metadata: Optional[Dict[str, Any]] = None,
                 instance_id: Optional[str] = None, health_check_url: Optional[str] = None) -> bool:
        try:
            return self.registry.register(service, url, metadata, instance_id, health_check_url)
        except DiscoveryError:
            return False

    def deregister(self, service: str, instance_id: Optional[str] = None) -> bool:
        try:
            return self.registry.deregister(service, instance_id)
        except DiscoveryError:
            return False

    def heartbeat(self, service: str, instance_id: Optional[str] = None) -> bool:
        try:
            return self.registry.heartbeat(service, instance_id)
        except DiscoveryError:
            return False

    def set_status(self, service: str, status: str, instance_id: Optional[str] = None) -> bool:
        try:
            return self.registry.set_status(service, status, instance_id)
        except DiscoveryError:
            return False

    def resolve(self, service: str) -> Optional[str]:
        return self.registry.resolve(service)

    def list(self) -> Dict[str, Any]:
        return self.registry.list_services()

    def list_instances(self, service: str) -> List[Dict[str, Any]]:
        return self.registry.list_instances(service)
