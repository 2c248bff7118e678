import logging
import threading
from typing import Optional, List
from flask import Flask, Request, Response, jsonify, request
from werkzeug.serving import make_server
from discovery_gateway.core.proxy import ProxyHandler
from discovery_gateway.core.resolvers import Resolver
from discovery_gateway.db.models import RouteEntry, RouteKind
from discovery_gateway.errors import ResolutionError

PROXY_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'HEAD', 'OPTIONS']

class GatewayRouter:
    """Routes inbound requests by exact (method, path) to static or service targets.

    Service routes are resolved per request through the installed resolver;
    the threaded WSGI server lets each request resolve independently.
    """

    def __init__(self, proxy: Optional[ProxyHandler] = None, timeout: float = 30):
        self.logger = logging.getLogger(__name__)
        self.proxy = proxy or ProxyHandler(timeout=timeout)
        self._routes: List[RouteEntry] = []
        self._routes_lock = threading.Lock()
        self._resolver: Optional[Resolver] = None
        self._server = None
        self._thread: Optional[threading.Thread] = None

    # --- Route table ---

    def add_route(self, method: str, path: str, target: str) -> None:
        """Registers a fixed destination, bypassing the resolver."""
        self._add(RouteEntry(method=method.upper(), path=path, target=target, kind=RouteKind.STATIC))

    def add_service_route(self, method: str, path: str, service: str) -> None:
        """Registers a destination resolved dynamically per request."""
        self._add(RouteEntry(method=method.upper(), path=path, target=service, kind=RouteKind.SERVICE))

    def set_resolver(self, resolver: Resolver) -> None:
        self._resolver = resolver

    def routes(self) -> List[RouteEntry]:
        with self._routes_lock:
            return list(self._routes)

    def service_names(self) -> List[str]:
        """Distinct services referenced by service routes, in route order."""
        names = []
        for route in self.routes():
            if route.kind == RouteKind.SERVICE and route.target not in names:
                names.append(route.target)
        return names

    def match(self, method: str, path: str) -> Optional[RouteEntry]:
        """First route whose method and path equal the request's."""
        for route in self.routes():
            if route.matches(method, path):
                return route
        return None

    def _add(self, route: RouteEntry) -> None:
        with self._routes_lock:
            self._routes.append(route)
        self.logger.debug(f"Added {route.kind} route {route.method} {route.path} -> {route.target}")

    # --- Dispatch ---

    def route_request(self, client_request: Request, path: str) -> Response:
        """Dispatch an inbound request to its route's target."""
        method = client_request.method
        full_path = '/' + path.lstrip('/')
        try:
            route = self.match(method, full_path)
            if route is None:
                return jsonify({"ok": False, "error": f"route not found: {method} {full_path}"}), 404

            if route.kind == RouteKind.STATIC:
                target = route.target
            else:
                target = self._resolve(route.target, method, full_path)

            return self.proxy.forward_request(client_request, target, full_path)

        except ResolutionError as e:
            self.logger.warning(f"Resolution failed for {method} {full_path}: {str(e)}")
            return jsonify({"ok": False, "error": str(e)}), 503
        except Exception as e:
            self.logger.error(f"Error routing request: {str(e)}")
            return jsonify({"ok": False, "error": "Internal server error"}), 500

    def _resolve(self, service: str, method: str, path: str) -> str:
        if self._resolver is None:
            raise ResolutionError(f"no resolver configured for service {service}")
        try:
            target = self._resolver(service, method, path)
        except ResolutionError:
            raise
        except Exception as e:
            raise ResolutionError(f"resolver failed for {service}: {str(e)}") from e
        if not target:
            raise ResolutionError(f"service not found in registry: {service}")
        return target

    # --- Serving ---

    def create_app(self) -> Flask:
        """Creates the Flask app that proxies every request through the router."""
        app = Flask(__name__)

        @app.route('/', defaults={'path': ''}, methods=PROXY_METHODS)
        @app.route('/<path:path>', methods=PROXY_METHODS)
        def proxy(path):
            return self.route_request(request, path)

        return app

    def listen(self, host: str, port: int) -> bool:
        """Binds and starts serving in a background thread. Returns False on bind errors."""
        try:
            self._server = make_server(host, port, self.create_app(), threaded=True)
        except (OSError, SystemExit) as e:
            self.logger.error(f"Failed to start gateway on {host}:{port}: {e}")
            return False

        self._thread = threading.Thread(target=self._server.serve_forever, name="gateway", daemon=True)
        self._thread.start()
        self.logger.info(f"Gateway listening on {host}:{port}")
        return True

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
