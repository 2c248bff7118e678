import pytest
import sys
import os
from unittest.mock import MagicMock
from flask import Flask, Request
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from discovery_gateway.core.registry import ServiceRegistry
from discovery_gateway.db.models import ServiceInstance, InstanceStatus


class FakeClock:
    """Manually advanced time source for registry freshness tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    """A fresh registry per test, driven by a fake clock"""
    return ServiceRegistry(heartbeat_timeout=30, clock=clock)


@pytest.fixture
def mock_instances():
    """Returns a list of instances of one service for testing"""
    return [
        ServiceInstance(
            service_name="user-service",
            instance_id=f"i{i}",
            url=f"http://127.0.0.1:{9000 + i}",
            status=InstanceStatus.UP,
        )
        for i in range(3)
    ]


@pytest.fixture
def flask_app():
    """Creates a Flask app for testing"""
    app = Flask(__name__)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def mock_request():
    """Creates a mock Flask request"""
    request = MagicMock(spec=Request)
    request.headers = {'Host': 'gateway.example.com'}
    request.method = 'GET'
    request.remote_addr = '192.168.1.1'
    request.path = '/'
    request.query_string = b''
    request.cookies = {}
    request.get_data.return_value = b''
    return request


@pytest.fixture
def mock_client():
    """A discovery client double with no registry behind it"""
    client = MagicMock()
    client.resolve.return_value = None
    client.register.return_value = True
    client.heartbeat.return_value = True
    client.set_status.return_value = True
    client.deregister.return_value = True
    return client
