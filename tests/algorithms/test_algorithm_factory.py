import pytest
from discovery_gateway.algorithms.algorithm_factory import AlgorithmFactory
from discovery_gateway.algorithms.round_robin import RoundRobinAlgorithm
from discovery_gateway.algorithms.first_available import FirstAvailableAlgorithm
from discovery_gateway.db.models import Algorithm


def test_get_round_robin_algorithm():
    assert isinstance(AlgorithmFactory.get_algorithm(Algorithm.ROUND_ROBIN), RoundRobinAlgorithm)


def test_get_algorithm_accepts_config_strings():
    assert isinstance(AlgorithmFactory.get_algorithm("first_available"), FirstAvailableAlgorithm)


def test_each_call_returns_fresh_state():
    assert AlgorithmFactory.get_algorithm("round_robin") is not AlgorithmFactory.get_algorithm("round_robin")


def test_get_unsupported_algorithm():
    with pytest.raises(ValueError, match="not supported"):
        AlgorithmFactory.get_algorithm("least_connection")


def test_first_available_picks_earliest(mock_instances):
    algorithm = FirstAvailableAlgorithm()
    assert algorithm.select_instance("svc", mock_instances).instance_id == "i0"
    assert algorithm.select_instance("svc", mock_instances[1:]).instance_id == "i1"
    with pytest.raises(ValueError):
        algorithm.select_instance("svc", [])
