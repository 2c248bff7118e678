import json
import requests
from flask import Request, Response, stream_with_context
from typing import Dict, List, Tuple
from urllib.parse import urlsplit
import logging

class ProxyHandler:
    def __init__(self, timeout: float = 30):
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def build_url(self, target: str, path: str, query_string: bytes = b"") -> str:
        """Joins the target base URL, the request path and its query string."""
        url = f"{target.rstrip('/')}/{path.lstrip('/')}"
        if query_string:
            url += "?" + query_string.decode("latin-1")
        return url

    def forward_request(self, client_request: Request, target: str, path: str) -> Response:
        """Forward the request to the resolved target base URL."""
        url = self.build_url(target, path, getattr(client_request, "query_string", b""))

        # Prepare headers - exclude hop-by-hop headers
        headers = self._prepare_headers(dict(client_request.headers), target, client_request.remote_addr)

        try:
            response = requests.request(
                method=client_request.method,
                url=url,
                headers=headers,
                data=client_request.get_data(),
                cookies=client_request.cookies,
                timeout=self.timeout,
                allow_redirects=False,
                stream=True  # Enable streaming for large responses
            )

            response_headers = self._prepare_response_headers(response.raw.headers)

            return Response(
                stream_with_context(response.iter_content(chunk_size=8192)),
                status=response.status_code,
                headers=response_headers
            )

        except requests.RequestException as e:
            self.logger.error(f"Error forwarding request to {url}: {str(e)}")
            body = json.dumps({"ok": False, "error": f"Error forwarding request: {str(e)}"})
            return Response(body, status=502, mimetype="application/json")

    def _prepare_headers(self, client_headers: Dict[str, str], target: str, remote_addr: str = None) -> Dict[str, str]:
        """Prepare headers for the backend request."""
        # Headers that should not be forwarded
        hop_by_hop_headers = {
            'connection', 'keep-alive', 'proxy-authenticate', 'proxy-authorization',
            'te', 'trailers', 'transfer-encoding', 'upgrade'
        }

        headers = {
            k: v for k, v in client_headers.items()
            if k.lower() not in hop_by_hop_headers
        }

        # Host must match the backend, not the gateway
        headers['Host'] = urlsplit(target).netloc

        client_ip = remote_addr or headers.get('X-Real-IP', '')
        forwarded_for = headers.get('X-Forwarded-For', '')
        if forwarded_for and client_ip:
            forwarded_for += ', '
        headers['X-Forwarded-For'] = forwarded_for + client_ip

        headers['X-Forwarded-Proto'] = 'https' if headers.get('X-Forwarded-Proto') == 'https' else 'http'
        headers['X-Forwarded-Host'] = headers.get('X-Forwarded-Host', client_headers.get('Host', ''))

        return headers

    def _prepare_response_headers(self, response_headers: Dict[str, str]) -> List[Tuple[str, str]]:
        """Prepare headers for the client response."""
        excluded_headers = {
            'content-encoding',
            'content-length',
            'transfer-encoding',
            'connection'
        }

        return [
            (name, value)
            for name, value in response_headers.items()
            if name.lower() not in excluded_headers
        ]
