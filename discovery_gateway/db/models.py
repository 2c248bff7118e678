from typing import Optional, Dict, Any
from pydantic import BaseModel, Field
from enum import Enum
import hashlib
import time

class Algorithm(str, Enum):
    ROUND_ROBIN = "round_robin"
    FIRST_AVAILABLE = "first_available"

class InstanceStatus(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str) -> "InstanceStatus":
        """Case-insensitive lookup; raises ValueError for unknown statuses."""
        return cls(str(value).strip().upper())

class RouteKind(str, Enum):
    STATIC = "static"
    SERVICE = "service"

def derive_instance_id(url: str) -> str:
    """Stable instance id for registrations that don't provide one."""
    return hashlib.sha1(url.encode()).hexdigest()

class ServiceInstance(BaseModel):
    service_name: str = Field(alias="serviceName", min_length=1)
    instance_id: str = Field(alias="instanceId", min_length=1)
    url: str = Field(min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    status: InstanceStatus = InstanceStatus.UP
    health_check_url: Optional[str] = Field(default=None, alias="healthCheckUrl")
    last_heartbeat_at: float = Field(default_factory=time.time, alias="lastHeartbeatAt")
    registered_at: float = Field(default_factory=time.time, alias="registeredAt")

    class Config:
        use_enum_values = True
        populate_by_name = True
        validate_assignment = True

    def to_record(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys)."""
        return self.model_dump(by_alias=True)

class RouteEntry(BaseModel):
    method: str
    path: str
    target: str # Static URL or logical service name, depending on kind
    kind: RouteKind = RouteKind.STATIC

    class Config:
        use_enum_values = True

    def matches(self, method: str, path: str) -> bool:
        return self.method == method.upper() and self.path == path
