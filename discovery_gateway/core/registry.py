import logging
import threading
import time
from typing import Optional, List, Dict, Any, Callable
from discovery_gateway.algorithms import SelectionAlgorithm
from discovery_gateway.algorithms.algorithm_factory import AlgorithmFactory
from discovery_gateway.db.models import ServiceInstance, InstanceStatus, Algorithm, derive_instance_id
from discovery_gateway.db.store import InstanceStore
from discovery_gateway.errors import ValidationError, NotFoundError

class ServiceRegistry:
    """Tracks service instances and answers resolution queries.

    All operations go through a single lock over the instance store. Reads
    hand out copies, so callers never observe a record mid-update.

    An instance is live when its status is UP and, if `heartbeat_timeout` is
    positive, its last heartbeat is no older than that many seconds.
    """

    def __init__(self, heartbeat_timeout: float = 30.0,
                 algorithm: Algorithm = Algorithm.ROUND_ROBIN,
                 clock: Callable[[], float] = time.time):
        self.heartbeat_timeout = heartbeat_timeout
        self.logger = logging.getLogger(__name__)
        self._store = InstanceStore()
        self._lock = threading.RLock()
        self._algorithm: SelectionAlgorithm = AlgorithmFactory.get_algorithm(algorithm)
        self._clock = clock

    # --- Mutations ---

    def register(self, service: str, url: str, metadata: Optional[Dict[str, Any]] = None,
                 instance_id: Optional[str] = None, health_check_url: Optional[str] = None) -> bool:
        """Upserts an instance, resetting it to UP with a fresh heartbeat."""
        service = (service or "").strip()
        url = (url or "").strip()
        if not service or not url:
            raise ValidationError("service and url are required")
        instance_id = (instance_id or "").strip() or derive_instance_id(url)

        with self._lock:
            now = self._clock()
            existing = self._store.get(service, instance_id)
            instance = ServiceInstance(
                service_name=service,
                instance_id=instance_id,
                url=url,
                metadata=dict(metadata or {}),
                status=InstanceStatus.UP,
                health_check_url=health_check_url or None,
                last_heartbeat_at=now,
                registered_at=existing.registered_at if existing else now,
            )
            self._store.put(instance)

        if existing:
            self.logger.debug(f"Refreshed instance {instance_id} of {service} at {url}")
        else:
            self.logger.info(f"Registered instance {instance_id} of {service} at {url}")
        return True

    def deregister(self, service: str, instance_id: Optional[str] = None) -> bool:
        """Removes one instance, or the whole service when no id is given.

        Unknown services and instances are a successful no-op.
        """
        service = (service or "").strip()
        if not service:
            raise ValidationError("service is required")
        instance_id = (instance_id or "").strip() or None

        with self._lock:
            if instance_id:
                removed = 1 if self._store.remove(service, instance_id) else 0
            else:
                removed = self._store.remove_service(service)
            if service not in self._store:
                self._algorithm.forget(service)

        if removed:
            self.logger.info(f"Deregistered {removed} instance(s) of {service}")
        else:
            self.logger.debug(f"Deregister for unknown target {service}/{instance_id}")
        return True

    def heartbeat(self, service: str, instance_id: Optional[str] = None) -> bool:
        """Refreshes liveness of one instance, or every instance of the service."""
        with self._lock:
            targets = self._targets(service, instance_id)
            now = self._clock()
            for instance in targets:
                instance.last_heartbeat_at = now
                instance.status = InstanceStatus.UP
        return True

    def set_status(self, service: str, status, instance_id: Optional[str] = None) -> bool:
        """Sets the advisory status consulted by resolve."""
        try:
            new_status = InstanceStatus.parse(status)
        except ValueError:
            valid_statuses = [s.value for s in InstanceStatus]
            raise ValidationError(f"Invalid status. Valid statuses are: {valid_statuses}")

        with self._lock:
            for instance in self._targets(service, instance_id):
                instance.status = new_status
        self.logger.info(f"Status of {service}/{instance_id or '*'} set to {new_status.value}")
        return True

    def mark_health(self, service: str, instance_id: str, healthy: bool) -> None:
        """Applies the outcome of an active health probe; unknown targets are ignored."""
        with self._lock:
            instance = self._store.get(service, instance_id)
            if instance is None:
                return
            instance.status = InstanceStatus.UP if healthy else InstanceStatus.DOWN
            if healthy:
                instance.last_heartbeat_at = self._clock()

    # --- Queries ---

    def resolve(self, service: str) -> Optional[str]:
        """Returns the URL of one live instance, or None."""
        with self._lock:
            live = [i for i in self._store.all_for(service) if self._is_live(i)]
            if not live:
                return None
            return self._algorithm.select_instance(service, live).url

    def list_instances(self, service: str) -> List[Dict[str, Any]]:
        """All instances of a service, DOWN ones included, in registration order."""
        with self._lock:
            return [instance.to_record() for instance in self._store.all_for(service)]

    def list_services(self) -> Dict[str, Dict[str, Any]]:
        """Coarse directory: service -> representative url and instance counts."""
        with self._lock:
            directory = {}
            for name, instances in self._store.all_services().items():
                live = [i for i in instances if self._is_live(i)]
                if live:
                    url = live[0].url
                else:
                    url = max(instances, key=lambda i: i.last_heartbeat_at).url
                directory[name] = {"url": url, "instances": len(instances), "up": len(live)}
            return directory

    def snapshot(self) -> List[ServiceInstance]:
        """Copies of every instance, for background checks."""
        with self._lock:
            return [
                instance.model_copy(deep=True)
                for instances in self._store.all_services().values()
                for instance in instances
            ]

    # --- Helpers ---

    def _targets(self, service: str, instance_id: Optional[str]) -> List[ServiceInstance]:
        """Instances addressed by (service, instance_id). Caller holds the lock."""
        service = (service or "").strip()
        if not service:
            raise ValidationError("service is required")
        instance_id = (instance_id or "").strip() or None
        if instance_id:
            instance = self._store.get(service, instance_id)
            if instance is None:
                raise NotFoundError(f"Instance '{instance_id}' of service '{service}' not found")
            return [instance]
        instances = self._store.all_for(service)
        if not instances:
            raise NotFoundError(f"Service '{service}' not found")
        return instances

    def _is_live(self, instance: ServiceInstance) -> bool:
        if instance.status != InstanceStatus.UP:
            return False
        if self.heartbeat_timeout and self.heartbeat_timeout > 0:
            return self._clock() - instance.last_heartbeat_at <= self.heartbeat_timeout
        return True
