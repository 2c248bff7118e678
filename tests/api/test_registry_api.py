import pytest
import json
from unittest.mock import MagicMock
from discovery_gateway.api.api import create_registry_server


@pytest.fixture
def app(registry):
    """Create a registry server around the per-test registry"""
    app = create_registry_server(registry)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def post(client, path, body):
    return client.post(path, data=json.dumps(body), content_type='application/json')


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert json.loads(response.data) == {"ok": True, "service": "discovery-registry"}


def test_register_and_resolve(client):
    response = post(client, '/v1/register', {
        "service": "user-service",
        "url": "http://h1",
        "instanceId": "i1",
        "metadata": {"zone": "a"},
    })
    assert response.status_code == 200
    assert json.loads(response.data) == {"ok": True}

    response = client.get('/v1/resolve?service=user-service')
    assert response.status_code == 200
    assert json.loads(response.data) == {"ok": True, "url": "http://h1"}


def test_register_missing_fields(client):
    response = post(client, '/v1/register', {"service": "svc"})
    assert response.status_code == 400
    data = json.loads(response.data)
    assert data["ok"] is False
    assert "service and url are required" in data["error"]


def test_register_non_json_body(client):
    response = client.post('/v1/register', data="not json", content_type='text/plain')
    assert response.status_code == 400


def test_register_blank_instance_id_is_derived(client, registry):
    post(client, '/v1/register', {"service": "svc", "url": "http://h1", "instanceId": "  "})
    post(client, '/v1/register', {"service": "svc", "url": "http://h1"})
    assert len(registry.list_instances("svc")) == 1


def test_register_with_health_check_url(client, registry):
    post(client, '/v1/register', {"service": "svc", "url": "http://h1", "healthCheckUrl": "/health"})
    assert registry.list_instances("svc")[0]["healthCheckUrl"] == "/health"


def test_register_internal_error_returns_500(client, app):
    broken = MagicMock()
    broken.register.side_effect = RuntimeError("store exploded")
    app.extensions['registry'] = broken

    response = post(client, '/v1/register', {"service": "svc", "url": "http://h1"})

    assert response.status_code == 500
    assert json.loads(response.data) == {"ok": False, "error": "store exploded"}


def test_resolve_unknown_returns_404(client):
    response = client.get('/v1/resolve?service=ghost')
    assert response.status_code == 404
    assert json.loads(response.data) == {"ok": False, "error": "not found"}


def test_resolve_requires_service(client):
    assert client.get('/v1/resolve').status_code == 400
    assert client.get('/v1/resolve?service=').status_code == 400


def test_heartbeat_unknown_returns_404(client):
    response = post(client, '/v1/heartbeat', {"service": "svc", "instanceId": "missing-id"})
    assert response.status_code == 404
    assert json.loads(response.data)["ok"] is False


def test_heartbeat_known_instance(client):
    post(client, '/v1/register', {"service": "svc", "url": "http://h1", "instanceId": "i1"})
    response = post(client, '/v1/heartbeat', {"service": "svc", "instanceId": "i1"})
    assert response.status_code == 200


def test_heartbeat_requires_service(client):
    assert post(client, '/v1/heartbeat', {}).status_code == 400


def test_status_down_then_resolve(client):
    post(client, '/v1/register', {"service": "user-service", "url": "http://h1", "instanceId": "i1"})
    post(client, '/v1/register', {"service": "user-service", "url": "http://h2", "instanceId": "i2"})

    response = post(client, '/v1/status', {"service": "user-service", "status": "DOWN", "instanceId": "i1"})
    assert response.status_code == 200

    for _ in range(3):
        data = json.loads(client.get('/v1/resolve?service=user-service').data)
        assert data["url"] == "http://h2"


def test_status_validation(client):
    assert post(client, '/v1/status', {"service": "svc"}).status_code == 400

    post(client, '/v1/register', {"service": "svc", "url": "http://h1", "instanceId": "i1"})
    response = post(client, '/v1/status', {"service": "svc", "status": "bogus", "instanceId": "i1"})
    assert response.status_code == 400
    assert "Invalid status" in json.loads(response.data)["error"]


def test_status_unknown_returns_404(client):
    response = post(client, '/v1/status', {"service": "svc", "status": "DOWN", "instanceId": "i1"})
    assert response.status_code == 404


def test_deregister_service(client):
    post(client, '/v1/register', {"service": "svc", "url": "http://h1", "instanceId": "i1"})

    response = post(client, '/v1/deregister', {"service": "svc"})
    assert response.status_code == 200
    assert json.loads(response.data) == {"ok": True}

    assert client.get('/v1/resolve?service=svc').status_code == 404
    data = json.loads(client.get('/v1/instances?service=svc').data)
    assert data == {"ok": True, "instances": []}


def test_deregister_unknown_is_ok(client):
    response = post(client, '/v1/deregister', {"service": "ghost", "instanceId": "i9"})
    assert response.status_code == 200


def test_deregister_requires_service(client):
    assert post(client, '/v1/deregister', {"instanceId": "i1"}).status_code == 400


def test_list_services(client):
    post(client, '/v1/register', {"service": "a", "url": "http://a1", "instanceId": "i1"})
    post(client, '/v1/register', {"service": "b", "url": "http://b1", "instanceId": "i1"})

    response = client.get('/v1/services')
    assert response.status_code == 200
    services = json.loads(response.data)["services"]
    assert services["a"]["url"] == "http://a1"
    assert services["b"]["url"] == "http://b1"


def test_list_services_internal_error(client, app):
    broken = MagicMock()
    broken.list_services.side_effect = RuntimeError("boom")
    app.extensions['registry'] = broken

    response = client.get('/v1/services')
    assert response.status_code == 500
    assert json.loads(response.data)["error"] == "boom"


def test_list_instances(client):
    post(client, '/v1/register', {"service": "svc", "url": "http://h1", "instanceId": "i1", "metadata": {"k": "v"}})
    post(client, '/v1/status', {"service": "svc", "status": "DOWN", "instanceId": "i1"})

    response = client.get('/v1/instances?service=svc')
    assert response.status_code == 200
    instances = json.loads(response.data)["instances"]
    assert len(instances) == 1
    assert instances[0]["instanceId"] == "i1"
    assert instances[0]["status"] == "DOWN"
    assert instances[0]["metadata"] == {"k": "v"}


def test_list_instances_requires_service(client):
    assert client.get('/v1/instances').status_code == 400


def test_apps_do_not_share_registries():
    first = create_registry_server().test_client()
    second = create_registry_server().test_client()

    post(first, '/v1/register', {"service": "svc", "url": "http://h1"})

    assert first.get('/v1/resolve?service=svc').status_code == 200
    assert second.get('/v1/resolve?service=svc').status_code == 404


def test_register_model_validation_error_returns_400(client, app):
    from discovery_gateway.db.models import ServiceInstance

    broken = MagicMock()
    broken.register.side_effect = lambda *args, **kwargs: ServiceInstance.model_validate({"url": ""})
    app.extensions['registry'] = broken

    response = post(client, '/v1/register', {"service": "svc", "url": "http://h1"})

    assert response.status_code == 400
    assert "invalid fields" in json.loads(response.data)["error"]
