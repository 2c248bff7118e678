from typing import List
from discovery_gateway.algorithms import SelectionAlgorithm
from discovery_gateway.db.models import ServiceInstance

class FirstAvailableAlgorithm(SelectionAlgorithm):
    def select_instance(self, service: str, instances: List[ServiceInstance]) -> ServiceInstance:
        """Always pick the earliest registered live instance."""
        if not instances:
            raise ValueError("No instances available")
        return instances[0]
