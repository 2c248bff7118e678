from abc import ABC, abstractmethod
from typing import List
from discovery_gateway.db.models import ServiceInstance

class SelectionAlgorithm(ABC):
    """Picks one instance among the live instances of a service.

    One algorithm object is owned by a registry and called under the
    registry's lock, so implementations may keep per-service state.
    """

    @abstractmethod
    def select_instance(self, service: str, instances: List[ServiceInstance]) -> ServiceInstance:
        """Returns the instance that should serve the next resolve for `service`."""
        pass

    def forget(self, service: str) -> None:
        """Drops any state kept for a service that no longer exists."""
        pass
