import pytest
from unittest.mock import patch, MagicMock
from discovery_gateway.core.health_checker import HealthChecker, health_url_for
from discovery_gateway.db.models import ServiceInstance
import requests


def make_instance(health_check_url="/health"):
    return ServiceInstance(
        service_name="docs-service",
        instance_id="i1",
        url="http://127.0.0.1:9101",
        health_check_url=health_check_url,
    )


def test_health_checker_init(registry):
    """Test initializing the health checker with custom parameters"""
    checker = HealthChecker(registry, interval=10, timeout=3, retries=2)
    assert checker.interval == 10
    assert checker.timeout == 3
    assert checker.retries == 2
    assert checker.daemon is True


def test_health_url_joins_relative_paths():
    assert health_url_for(make_instance("/health")) == "http://127.0.0.1:9101/health"
    assert health_url_for(make_instance("health")) == "http://127.0.0.1:9101/health"
    assert health_url_for(make_instance("http://other:1/ping")) == "http://other:1/ping"
    assert health_url_for(make_instance(None)) is None


def test_healthy_instance_marked_up(registry):
    with patch('discovery_gateway.core.health_checker.requests.get') as mock_get:
        mock_get.return_value = MagicMock(status_code=200)
        registry.register("docs-service", "http://127.0.0.1:9101", {}, "i1", "/health")
        registry.set_status("docs-service", "DOWN", "i1")

        checker = HealthChecker(registry, interval=5, timeout=2, retries=1)
        checker.tick()

        mock_get.assert_called_once_with('http://127.0.0.1:9101/health', timeout=2)
        assert registry.resolve("docs-service") == "http://127.0.0.1:9101"


def test_non_2xx_marks_instance_down(registry):
    with patch('discovery_gateway.core.health_checker.requests.get') as mock_get:
        mock_get.return_value = MagicMock(status_code=503)
        registry.register("docs-service", "http://127.0.0.1:9101", {}, "i1", "/health")

        HealthChecker(registry, retries=1).tick()

        assert registry.list_instances("docs-service")[0]["status"] == "DOWN"


def test_unreachable_instance_retried_then_marked_down(registry):
    with patch('discovery_gateway.core.health_checker.requests.get') as mock_get, \
         patch('discovery_gateway.core.health_checker.time.sleep') as mock_sleep:
        mock_get.side_effect = requests.RequestException("Connection refused")
        registry.register("docs-service", "http://127.0.0.1:9101", {}, "i1", "/health")

        HealthChecker(registry, retries=3).tick()

        assert mock_get.call_count == 3
        assert mock_sleep.call_count == 2
        assert registry.resolve("docs-service") is None


def test_instances_without_health_url_are_not_probed(registry):
    with patch('discovery_gateway.core.health_checker.requests.get') as mock_get:
        registry.register("docs-service", "http://127.0.0.1:9101", {}, "i1")

        HealthChecker(registry).tick()

        mock_get.assert_not_called()
        assert registry.resolve("docs-service") == "http://127.0.0.1:9101"


def test_check_all_instances_across_services(registry):
    registry.register("a", "http://a1", {}, "i1", "/health")
    registry.register("a", "http://a2", {}, "i2", "/health")
    registry.register("b", "http://b1", {}, "i3", "/health")

    with patch.object(HealthChecker, '_check_instance') as mock_check_instance:
        HealthChecker(registry)._check_all_instances()

    assert [c[0][0].instance_id for c in mock_check_instance.call_args_list] == ["i1", "i2", "i3"]
