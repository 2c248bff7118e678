from typing import List, Dict
from discovery_gateway.algorithms import SelectionAlgorithm
from discovery_gateway.db.models import ServiceInstance
import threading

class RoundRobinAlgorithm(SelectionAlgorithm):
    def __init__(self):
        self._next_index: Dict[str, int] = {}  # service -> next position
        self._lock = threading.Lock()

    def select_instance(self, service: str, instances: List[ServiceInstance]) -> ServiceInstance:
        """Select the next instance in a round-robin fashion."""
        if not instances:
            raise ValueError("No instances available")

        with self._lock:
            index = self._next_index.get(service, 0) % len(instances)
            self._next_index[service] = (index + 1) % len(instances)
            return instances[index]

    def forget(self, service: str) -> None:
        with self._lock:
            self._next_index.pop(service, None)
