import atexit
import logging
import threading
import time
from typing import Optional, Dict, Any, Callable
from discovery_gateway.client.base import DiscoveryClient
from discovery_gateway.core.periodic import PeriodicTask

logger = logging.getLogger(__name__)

def register_with_retry(client: DiscoveryClient, service: str, url: str,
                        metadata: Optional[Dict[str, Any]] = None, instance_id: Optional[str] = None,
                        attempts: int = 20, delay: float = 0.25, health_check_url: Optional[str] = None,
                        sleep: Callable[[float], None] = time.sleep) -> bool:
    """Registers an instance, retrying with a fixed delay. Returns False once attempts run out."""
    for attempt in range(max(1, attempts)):
        if client.register(service, url, metadata, instance_id, health_check_url):
            return True
        logger.debug(f"Registration attempt {attempt + 1}/{attempts} for {service} failed")
        if attempt + 1 < attempts:
            sleep(delay)
    return False

class ServiceAgent:
    """Keeps one service instance registered for the lifetime of its process.

    Heartbeats and full re-registrations run on their own cadences. A failed
    heartbeat (e.g. the registry restarted and forgot us) triggers an
    immediate re-registration.
    """

    def __init__(self, client: DiscoveryClient, service: str, url: str, instance_id: str,
                 metadata: Optional[Dict[str, Any]] = None, heartbeat_interval: float = 10,
                 register_interval: float = 20, attempts: int = 20, delay: float = 0.25,
                 health_check_url: Optional[str] = None):
        self.client = client
        self.service = service
        self.url = url
        self.instance_id = instance_id
        self.metadata = dict(metadata or {})
        self.heartbeat_interval = heartbeat_interval if heartbeat_interval and heartbeat_interval > 0 else 10
        self.register_interval = register_interval if register_interval and register_interval > 0 else 20
        self.attempts = attempts
        self.delay = delay
        self.health_check_url = health_check_url
        self.registered = False
        self._lock = threading.Lock()
        self._heartbeat_task: Optional[PeriodicTask] = None
        self._register_task: Optional[PeriodicTask] = None
        self._shut_down = False

    def register_initial(self) -> bool:
        """Registers with bounded retries; failure is logged, not raised."""
        self.registered = register_with_retry(
            self.client, self.service, self.url, self.metadata, self.instance_id,
            attempts=self.attempts, delay=self.delay, health_check_url=self.health_check_url,
        )
        if not self.registered:
            logger.warning(f"Initial registration failed for {self.service} ({self.instance_id})")
        return self.registered

    def register_tick(self) -> None:
        with self._lock:
            self.registered = self.client.register(
                self.service, self.url, self.metadata, self.instance_id, self.health_check_url
            )
        if not self.registered:
            logger.warning(f"Re-registration failed for {self.service} ({self.instance_id})")

    def heartbeat_tick(self) -> None:
        if not self.registered:
            self.register_tick()
            return
        if not self.client.heartbeat(self.service, self.instance_id):
            logger.info(f"Heartbeat rejected for {self.service} ({self.instance_id}), re-registering")
            self.register_tick()

    def start(self) -> bool:
        """Registers and starts the background loops. Returns the initial registration result."""
        registered = self.register_initial()
        self._heartbeat_task = PeriodicTask(self.heartbeat_interval, self.heartbeat_tick,
                                            name=f"{self.service}-heartbeat", run_immediately=False)
        self._register_task = PeriodicTask(self.register_interval, self.register_tick,
                                           name=f"{self.service}-register", run_immediately=False)
        self._heartbeat_task.start()
        self._register_task.start()
        return registered

    def attach_shutdown(self) -> None:
        """Runs `shutdown` when the interpreter exits."""
        atexit.register(self.shutdown)

    def shutdown(self) -> None:
        """Stops the loops, then pushes DOWN and deregisters. Fire-and-forget."""
        if self._shut_down:
            return
        self._shut_down = True
        for task in (self._heartbeat_task, self._register_task):
            if task is not None:
                task.stop()
        try:
            self.client.set_status(self.service, 'DOWN', self.instance_id)
        except Exception as e:
            logger.warning(f"Marking {self.service} DOWN failed: {e}")
        try:
            self.client.deregister(self.service, self.instance_id)
        except Exception as e:
            logger.warning(f"Deregistering {self.service} failed: {e}")
        logger.info(f"{self.service} ({self.instance_id}) deregistered")
