import threading
from typing import Dict, Optional

class ResolutionCache:
    """Last-known-good URL per service, used when the registry can't answer.

    Entries are overwritten on every successful resolve and never expire.
    """

    def __init__(self):
        self._urls: Dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, service: str, url: str) -> None:
        if not url:
            return
        with self._lock:
            self._urls[service] = url

    def last_known(self, service: str) -> Optional[str]:
        with self._lock:
            return self._urls.get(service)

    def entries(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._urls)
