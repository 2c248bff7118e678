from typing import Dict, Type
from discovery_gateway.algorithms import SelectionAlgorithm
from discovery_gateway.algorithms.round_robin import RoundRobinAlgorithm
from discovery_gateway.algorithms.first_available import FirstAvailableAlgorithm
from discovery_gateway.db.models import Algorithm

class AlgorithmFactory:
    _algorithms: Dict[Algorithm, Type[SelectionAlgorithm]] = {
        Algorithm.ROUND_ROBIN: RoundRobinAlgorithm,
        Algorithm.FIRST_AVAILABLE: FirstAvailableAlgorithm,
    }

    @classmethod
    def get_algorithm(cls, algorithm_type) -> SelectionAlgorithm:
        """
        Factory method to get a fresh selection algorithm
        """
        try:
            algorithm_type = Algorithm(algorithm_type)
        except ValueError:
            raise ValueError(f"Algorithm '{algorithm_type}' not supported")

        algorithm_class = cls._algorithms[algorithm_type]
        return algorithm_class()
