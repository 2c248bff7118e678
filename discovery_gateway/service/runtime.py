import os
import socket
import time
import logging
from typing import Dict, Any, Optional
from flask import Flask, jsonify
from discovery_gateway.client.agent import ServiceAgent
from discovery_gateway.client.base import DiscoveryClient
from discovery_gateway.utils.config import ServiceSettings

logger = logging.getLogger(__name__)

def service_url_for(settings: ServiceSettings) -> str:
    """The URL other processes should use to reach this instance."""
    return settings.url or f"http://{settings.public_host}:{settings.port}"

def instance_id_for(settings: ServiceSettings) -> str:
    return settings.instance_id or f"{settings.name}-{os.getpid()}"

def default_metadata(settings: ServiceSettings) -> Dict[str, Any]:
    metadata = {
        'role': settings.name,
        'hostname': socket.gethostname() or 'unknown',
        'startedAt': str(int(time.time())),
    }
    metadata.update(settings.metadata)
    return metadata

def create_service_app(name: str, instance_id: str) -> Flask:
    """Minimal service exposing the health endpoints the gateway routes to."""
    app = Flask(__name__)

    @app.route('/health')
    @app.route('/api/health')
    def health():
        return jsonify({"ok": True, "service": name, "instanceId": instance_id}), 200

    return app

def start_service(settings: ServiceSettings, client: DiscoveryClient,
                  app: Optional[Flask] = None) -> ServiceAgent:
    """Registers the instance, starts its heartbeat loops and returns the agent.

    Serving is left to the caller; a failed initial registration only logs a
    warning so a registry outage doesn't keep the service down.
    """
    instance_id = instance_id_for(settings)
    agent = ServiceAgent(
        client,
        settings.name,
        service_url_for(settings),
        instance_id,
        metadata=default_metadata(settings),
        heartbeat_interval=settings.heartbeat_interval,
        register_interval=settings.register_interval,
        attempts=settings.register_attempts,
        delay=settings.register_delay,
        health_check_url='/health' if app is not None else None,
    )
    agent.start()
    agent.attach_shutdown()
    logger.info(f"{settings.name} listening on {settings.host}:{settings.port} "
                f"({agent.url}) instance={instance_id}")
    return agent
