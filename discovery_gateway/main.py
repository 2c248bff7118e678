import sys
import os
import argparse
import threading
import time
import logging
from typing import Optional, Callable, Dict, Any
from flask import Flask

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from discovery_gateway.utils.config import load_config, get_config, build_settings, Settings
from discovery_gateway.api.api import create_registry_server
from discovery_gateway.client.base import DiscoveryClient
from discovery_gateway.client.http_client import HttpDiscoveryClient
from discovery_gateway.core.gateway import GatewayRouter
from discovery_gateway.core.health_checker import HealthChecker
from discovery_gateway.core.registry import ServiceRegistry
from discovery_gateway.core.resolution_cache import ResolutionCache
from discovery_gateway.core.resolvers import make_dynamic_resolver, resolve_static_targets
from discovery_gateway.errors import StartupResolutionError
from discovery_gateway.service.runtime import create_service_app, start_service, instance_id_for

logger = logging.getLogger(__name__)

def setup_logging(logging_config: Dict[str, Any]) -> None:
    """Configures the root logger from the `logging` config section."""
    log_level_name = str(logging_config.get('level', 'INFO')).upper()
    log_file = logging_config.get('file')

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level_name, logging.INFO))

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

def run_server(app: Flask, host: str, port: int, name: str):
    """Run a Flask server, exiting the process if it can't start."""
    try:
        app.run(host=host, port=port, threaded=True)
    except Exception as e:
        logger.error(f"Error starting {name} server: {e}")
        sys.exit(1)

# --- Roles ---

def run_registry(settings: Settings) -> None:
    registry_settings = settings.registry
    registry = ServiceRegistry(
        heartbeat_timeout=registry_settings.heartbeat_timeout,
        algorithm=registry_settings.algorithm,
    )
    health_checker = HealthChecker(registry, interval=registry_settings.health_check_interval)
    health_checker.start()
    logger.info("Health checker started")

    app = create_registry_server(registry)
    logger.info(f"Registry listening on {registry_settings.host}:{registry_settings.port}")
    try:
        run_server(app, registry_settings.host, registry_settings.port, 'Registry')
    finally:
        health_checker.stop()

def build_gateway(settings: Settings, client: DiscoveryClient,
                  sleep: Callable[[float], None] = time.sleep) -> GatewayRouter:
    """Builds the router from the configured route table.

    In dynamic mode every service route is resolved per request. In static
    mode each service is resolved once here; StartupResolutionError
    propagates if one can't be.
    """
    gateway_settings = settings.gateway
    gateway = GatewayRouter(timeout=gateway_settings.timeout)
    fallback = gateway_settings.fallback_target or None

    static_routes = [r for r in gateway_settings.routes if r.target and not r.service]
    service_routes = [r for r in gateway_settings.routes if r.service]
    for route in static_routes:
        gateway.add_route(route.method, route.path, route.target)

    if gateway_settings.dynamic_resolver:
        for route in service_routes:
            gateway.add_service_route(route.method, route.path, route.service)
        gateway.set_resolver(make_dynamic_resolver(client, ResolutionCache(), fallback))
    else:
        targets = resolve_static_targets(
            client,
            [route.service for route in service_routes],
            attempts=gateway_settings.startup_attempts,
            delay=gateway_settings.startup_delay,
            fallback_target=fallback,
            registry_url=gateway_settings.registry_url,
            sleep=sleep,
        )
        for route in service_routes:
            gateway.add_route(route.method, route.path, targets[route.service])

    if not gateway.routes():
        logger.warning("Gateway started with an empty route table")
    return gateway

def run_gateway(settings: Settings, client: Optional[DiscoveryClient] = None,
                sleep: Callable[[float], None] = time.sleep) -> GatewayRouter:
    """Builds and starts the gateway; exits non-zero if it can't resolve or bind."""
    gateway_settings = settings.gateway
    if client is None:
        client = HttpDiscoveryClient(gateway_settings.registry_url, timeout=gateway_settings.client_timeout)

    try:
        gateway = build_gateway(settings, client, sleep=sleep)
    except StartupResolutionError as e:
        logger.error(str(e))
        sys.exit(1)

    # Disable Werkzeug's default request logging for the gateway
    logging.getLogger('werkzeug').setLevel(logging.ERROR)

    if not gateway.listen(gateway_settings.host, gateway_settings.port):
        sys.exit(1)

    logger.info(f"Gateway using registry {gateway_settings.registry_url}")
    return gateway

def run_service(settings: Settings) -> None:
    service_settings = settings.service
    client = HttpDiscoveryClient(service_settings.registry_url)
    app = create_service_app(service_settings.name, instance_id_for(service_settings))
    start_service(service_settings, client, app)
    run_server(app, service_settings.host, service_settings.port, service_settings.name)

def main(argv=None):
    parser = argparse.ArgumentParser(description="Run the discovery registry, the gateway or an example service.")
    parser.add_argument('role', choices=['registry', 'gateway', 'service'], help='Which process to run.')
    parser.add_argument('--config', type=str, default='config.yaml', help='Path to the configuration file.')
    args = parser.parse_args(argv)

    config = {}
    if os.path.exists(args.config):
        load_config(args.config)
        config = get_config()
    else:
        print(f"Configuration file not found at {args.config}, using defaults", file=sys.stderr)
    settings = build_settings(config)

    setup_logging(settings.logging)

    if args.role == 'registry':
        run_registry(settings)
    elif args.role == 'service':
        run_service(settings)
    else:
        gateway = run_gateway(settings)
        try:
            while gateway.is_running():
                threading.Event().wait(1)
            logger.error("Gateway stopped unexpectedly")
            sys.exit(1)
        except KeyboardInterrupt:
            logger.info("Shutting down gateway...")
            gateway.stop()
            sys.exit(0)

if __name__ == '__main__':
    main()
