from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any

class DiscoveryClient(ABC):
    """Capability interface for talking to a registry.

    Transports implement the required operations; `heartbeat`,
    `set_status` and `list_instances` have conservative defaults for
    transports that can't offer them.
    """

    @abstractmethod
    def register(self, service: str, url: str, metadata: Optional[Dict[str, Any]] = None,
                 instance_id: Optional[str] = None, health_check_url: Optional[str] = None) -> bool:
        pass

    @abstractmethod
    def deregister(self, service: str, instance_id: Optional[str] = None) -> bool:
        pass

    @abstractmethod
    def resolve(self, service: str) -> Optional[str]:
        """Returns a live URL, None if the registry has none.

        Raises TransientNetworkError when the registry can't be reached.
        """
        pass

    @abstractmethod
    def list(self) -> Dict[str, Any]:
        pass

    def heartbeat(self, service: str, instance_id: Optional[str] = None) -> bool:
        return False

    def set_status(self, service: str, status: str, instance_id: Optional[str] = None) -> bool:
        return False

    def list_instances(self, service: str) -> List[Dict[str, Any]]:
        return []
