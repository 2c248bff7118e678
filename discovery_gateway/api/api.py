from typing import Optional
from flask import Flask, jsonify
from discovery_gateway.api.registry_api import registry_bp
from discovery_gateway.core.registry import ServiceRegistry

REGISTRY_SERVICE_NAME = 'discovery-registry'

def create_registry_server(registry: Optional[ServiceRegistry] = None) -> Flask:
    """Creates and configures the Flask registry server around `registry`."""
    app = Flask(__name__)
    # Each app owns its registry; handlers reach it through app.extensions
    app.extensions['registry'] = registry if registry is not None else ServiceRegistry()

    app.register_blueprint(registry_bp)

    @app.route('/health')
    def health():
        return jsonify({"ok": True, "service": REGISTRY_SERVICE_NAME}), 200

    return app
