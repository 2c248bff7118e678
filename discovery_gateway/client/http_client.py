import logging
import requests
from typing import Optional, List, Dict, Any, Tuple
from discovery_gateway.client.base import DiscoveryClient
from discovery_gateway.db.models import derive_instance_id
from discovery_gateway.errors import TransientNetworkError

class HttpDiscoveryClient(DiscoveryClient):
    """Talks to the registry's JSON API over HTTP.

    Mutating calls report failure as False (and log it); `resolve`
    distinguishes "no live instance" (None) from "registry unreachable"
    (TransientNetworkError) so the gateway can fall back.
    """

    def __init__(self, base_url: str, timeout: float = 2.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout if timeout and timeout > 0 else 2.0
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    def register(self, service: str, url: str, metadata: Optional[Dict[str, Any]] = None,
                 instance_id: Optional[str] = None, health_check_url: Optional[str] = None) -> bool:
        body = {
            'service': service,
            'url': url,
            'instanceId': instance_id or derive_instance_id(url),
            'metadata': metadata or {},
        }
        if health_check_url:
            body['healthCheckUrl'] = health_check_url
        return self._ok('POST', '/v1/register', json=body)

    def deregister(self, service: str, instance_id: Optional[str] = None) -> bool:
        return self._ok('POST', '/v1/deregister', json={'service': service, 'instanceId': instance_id})

    def heartbeat(self, service: str, instance_id: Optional[str] = None) -> bool:
        return self._ok('POST', '/v1/heartbeat', json={'service': service, 'instanceId': instance_id})

    def set_status(self, service: str, status: str, instance_id: Optional[str] = None) -> bool:
        return self._ok('POST', '/v1/status', json={
            'service': service,
            'status': status,
            'instanceId': instance_id,
        })

    def resolve(self, service: str) -> Optional[str]:
        status, payload = self._request('GET', '/v1/resolve', params={'service': service})
        if status >= 500:
            raise TransientNetworkError(f"Registry error {status} resolving {service}: {payload.get('error')}")
        url = payload.get('url')
        if 200 <= status < 300 and isinstance(url, str) and url:
            return url
        return None

    def list(self) -> Dict[str, Any]:
        try:
            status, payload = self._request('GET', '/v1/services')
        except TransientNetworkError as e:
            self.logger.warning(f"Listing services failed: {e}")
            return {}
        services = payload.get('services')
        return services if 200 <= status < 300 and isinstance(services, dict) else {}

    def list_instances(self, service: str) -> List[Dict[str, Any]]:
        try:
            status, payload = self._request('GET', '/v1/instances', params={'service': service})
        except TransientNetworkError as e:
            self.logger.warning(f"Listing instances of {service} failed: {e}")
            return []
        instances = payload.get('instances')
        return instances if 200 <= status < 300 and isinstance(instances, list) else []

    def _ok(self, method: str, path: str, **kwargs) -> bool:
        try:
            status, payload = self._request(method, path, **kwargs)
        except TransientNetworkError as e:
            self.logger.warning(f"{method} {path} failed: {e}")
            return False
        if not (200 <= status < 300 and payload.get('ok')):
            self.logger.debug(f"{method} {path} rejected with {status}: {payload.get('error')}")
            return False
        return True

    def _request(self, method: str, path: str, **kwargs) -> Tuple[int, Dict[str, Any]]:
        """Performs one call and returns (status code, decoded JSON object)."""
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransientNetworkError(f"Request to {url} failed: {str(e)}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {'ok': False, 'error': 'invalid json response'}
        return response.status_code, payload
