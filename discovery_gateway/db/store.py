from typing import Optional, List, Dict
from discovery_gateway.db.models import ServiceInstance

class InstanceStore:
    """In-memory table of service instances keyed by (service, instance_id).

    Not thread-safe on its own; the registry owns the store and serializes
    every access through its lock. Within a service, instances keep their
    first-registration order.
    """

    def __init__(self):
        # service name -> instance id -> instance
        self._instances: Dict[str, Dict[str, ServiceInstance]] = {}

    # --- Writes ---

    def put(self, instance: ServiceInstance) -> None:
        """Inserts or replaces an instance. Replacing keeps its position."""
        self._instances.setdefault(instance.service_name, {})[instance.instance_id] = instance

    def remove(self, service: str, instance_id: str) -> bool:
        """Removes a single instance. Drops the service once it is empty."""
        instances = self._instances.get(service)
        if not instances or instance_id not in instances:
            return False
        del instances[instance_id]
        if not instances:
            del self._instances[service]
        return True

    def remove_service(self, service: str) -> int:
        """Removes every instance of a service, returning how many were removed."""
        instances = self._instances.pop(service, None)
        return len(instances) if instances else 0

    # --- Reads ---

    def get(self, service: str, instance_id: str) -> Optional[ServiceInstance]:
        return self._instances.get(service, {}).get(instance_id)

    def all_for(self, service: str) -> List[ServiceInstance]:
        return list(self._instances.get(service, {}).values())

    def all_services(self) -> Dict[str, List[ServiceInstance]]:
        return {name: list(instances.values()) for name, instances in self._instances.items()}

    def __contains__(self, service: str) -> bool:
        return service in self._instances

    def __len__(self) -> int:
        return sum(len(instances) for instances in self._instances.values())
