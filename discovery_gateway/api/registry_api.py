import logging
from flask import request, jsonify, Blueprint, current_app
from typing import Dict, Any, Optional
from pydantic import ValidationError
from discovery_gateway.core.registry import ServiceRegistry
from discovery_gateway.errors import DiscoveryError

# URL: /v1/...
registry_bp = Blueprint('registry_api', __name__, url_prefix='/v1')
logger = logging.getLogger(__name__)

def _registry() -> ServiceRegistry:
    return current_app.extensions['registry']

def _body() -> Dict[str, Any]:
    """JSON object body; anything else counts as empty."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return str(value).strip() if value is not None else ''

def _optional_id(data: Dict[str, Any]) -> Optional[str]:
    return _text(data, 'instanceId') or None

def _fail(error: str, status: int):
    return jsonify({"ok": False, "error": error}), status

def _handle(operation: str, call):
    """Runs a registry call, mapping domain errors to the wire contract."""
    try:
        ok = call()
        return jsonify({"ok": bool(ok)}), 200 if ok else 500
    except DiscoveryError as e:
        return _fail(str(e), e.status_code)
    except ValidationError as e:
        fields = [str(err["loc"][0]) for err in e.errors() if err.get("loc")]
        return _fail(f"invalid fields: {', '.join(fields)}", 400)
    except Exception as e:
        logger.error(f"Error during {operation}: {e}")
        return _fail(str(e), 500)

@registry_bp.route('/register', methods=['POST'])
def register_instance():
    """API endpoint to register (or refresh) an instance."""
    data = _body()
    service = _text(data, 'service')
    url = _text(data, 'url')
    if not service or not url:
        return _fail("service and url are required", 400)

    metadata = data.get('metadata')
    if not isinstance(metadata, dict):
        metadata = {}

    return _handle('register', lambda: _registry().register(
        service, url, metadata, _optional_id(data), _text(data, 'healthCheckUrl') or None
    ))

@registry_bp.route('/deregister', methods=['POST'])
def deregister_instance():
    """API endpoint to remove one instance, or a whole service."""
    data = _body()
    service = _text(data, 'service')
    if not service:
        return _fail("service is required", 400)
    return _handle('deregister', lambda: _registry().deregister(service, _optional_id(data)))

@registry_bp.route('/heartbeat', methods=['POST'])
def heartbeat_instance():
    data = _body()
    service = _text(data, 'service')
    if not service:
        return _fail("service is required", 400)
    return _handle('heartbeat', lambda: _registry().heartbeat(service, _optional_id(data)))

@registry_bp.route('/status', methods=['POST'])
def update_instance_status():
    """API endpoint to set the status of an instance or of every instance of a service."""
    data = _body()
    service = _text(data, 'service')
    status = _text(data, 'status')
    if not service or not status:
        return _fail("service and status are required", 400)
    return _handle('status', lambda: _registry().set_status(service, status, _optional_id(data)))

@registry_bp.route('/resolve', methods=['GET'])
def resolve_service():
    service = request.args.get('service', '').strip()
    if not service:
        return _fail("service query is required", 400)

    try:
        url = _registry().resolve(service)
    except Exception as e:
        logger.error(f"Error resolving {service}: {e}")
        return _fail(str(e), 500)

    if not url:
        return _fail("not found", 404)
    return jsonify({"ok": True, "url": url}), 200

@registry_bp.route('/services', methods=['GET'])
def list_services():
    try:
        return jsonify({"ok": True, "services": _registry().list_services()}), 200
    except Exception as e:
        logger.error(f"Error listing services: {e}")
        return _fail(str(e), 500)

@registry_bp.route('/instances', methods=['GET'])
def list_instances():
    """API endpoint to list every instance of a service, DOWN ones included."""
    service = request.args.get('service', '').strip()
    if not service:
        return _fail("service query is required", 400)

    try:
        return jsonify({"ok": True, "instances": _registry().list_instances(service)}), 200
    except Exception as e:
        logger.error(f"Error listing instances of {service}: {e}")
        return _fail(str(e), 500)
