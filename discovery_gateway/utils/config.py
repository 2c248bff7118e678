import math
import os
import yaml
from typing import Dict, Any, List, Optional, Mapping
from pydantic import BaseModel, Field, field_validator, ValidationInfo

CONFIG: Dict[str, Any] = {}

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    'REGISTRY_HOST': ('registry', 'host'),
    'REGISTRY_PORT': ('registry', 'port'),
    'DISCOVERY_HEARTBEAT_TIMEOUT': ('registry', 'heartbeat_timeout'),
    'DISCOVERY_HEALTH_CHECK_INTERVAL': ('registry', 'health_check_interval'),
    'REGISTRY_URL': ('gateway', 'registry_url'),
    'GATEWAY_HOST': ('gateway', 'host'),
    'GATEWAY_PORT': ('gateway', 'port'),
    'GATEWAY_FALLBACK_TARGET': ('gateway', 'fallback_target'),
    'GATEWAY_DYNAMIC_RESOLVER': ('gateway', 'dynamic_resolver'),
    'SERVICE_NAME': ('service', 'name'),
    'SERVICE_HOST': ('service', 'host'),
    'SERVICE_PORT': ('service', 'port'),
    'SERVICE_PUBLIC_HOST': ('service', 'public_host'),
    'SERVICE_URL': ('service', 'url'),
    'INSTANCE_ID': ('service', 'instance_id'),
    'HEARTBEAT_SEC': ('service', 'heartbeat_interval'),
    'SESSION_TTL': ('auth', 'session_ttl'),
    'LOG_LEVEL': ('logging', 'level'),
}

def load_config(path: str = 'config.yaml') -> None:
    """Loads configuration from a YAML file."""
    global CONFIG
    try:
        with open(path, 'r') as f:
            CONFIG = yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"Error: Configuration file '{path}' not found.")
        CONFIG = {}
    except yaml.YAMLError as e:
        print(f"Error parsing configuration file '{path}': {e}")
        CONFIG = {}

def get_config() -> Dict[str, Any]:
    """Returns the loaded configuration."""
    if not CONFIG:
        load_config() # Load if not already loaded
    return CONFIG

def apply_env_overrides(config: Dict[str, Any], environ: Mapping[str, str] = None) -> Dict[str, Any]:
    """Returns a copy of `config` with non-empty environment variables layered on top."""
    environ = os.environ if environ is None else environ
    merged = {section: dict(values or {}) for section, values in config.items() if isinstance(values, dict)}
    for name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(name)
        if value is not None and value.strip() != '':
            merged.setdefault(section, {})[key] = value.strip()
    return merged

# --- Validated settings ---

def _default_for(cls, info: ValidationInfo):
    return cls.model_fields[info.field_name].default

def _parse_bool(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ('1', 'true', 'yes', 'on'):
        return True
    if text in ('0', 'false', 'no', 'off'):
        return False
    return None

class _Section(BaseModel):
    """Ports outside 1-65535 and non-positive intervals fall back to defaults.

    `heartbeat_timeout` may be 0, which turns freshness checks off.
    """

    @field_validator('port', 'heartbeat_interval', 'register_interval', 'heartbeat_timeout',
                     'health_check_interval', 'session_ttl', 'timeout', 'client_timeout',
                     'startup_attempts', 'startup_delay', 'register_attempts', 'register_delay',
                     mode='before', check_fields=False)
    @classmethod
    def _positive_or_default(cls, value, info: ValidationInfo):
        default = _default_for(cls, info)
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        if not math.isfinite(number):
            return default
        if info.field_name == 'heartbeat_timeout':
            if number < 0:
                return default
        elif number <= 0:
            return default
        if info.field_name == 'port' and not (1 <= number <= 65535):
            return default
        if cls.model_fields[info.field_name].annotation is int:
            return int(number) if number.is_integer() else default
        return number

    @field_validator('dynamic_resolver', mode='before', check_fields=False)
    @classmethod
    def _bool_or_default(cls, value, info: ValidationInfo):
        parsed = _parse_bool(value)
        return _default_for(cls, info) if parsed is None else parsed

class RegistrySettings(_Section):
    host: str = '0.0.0.0'
    port: int = 9090
    heartbeat_timeout: float = 30.0
    health_check_interval: float = 10.0
    algorithm: str = 'round_robin'

class RouteSettings(BaseModel):
    method: str = 'GET'
    path: str
    service: Optional[str] = None
    target: Optional[str] = None

class GatewaySettings(_Section):
    host: str = '0.0.0.0'
    port: int = 9008
    registry_url: str = 'http://127.0.0.1:9090'
    fallback_target: str = ''
    dynamic_resolver: bool = False
    timeout: float = 30.0
    client_timeout: float = 2.0
    startup_attempts: int = 40
    startup_delay: float = 0.25
    routes: List[RouteSettings] = Field(default_factory=list)

class ServiceSettings(_Section):
    name: str = 'docs-service'
    host: str = '0.0.0.0'
    port: int = 9101
    public_host: str = '127.0.0.1'
    url: str = ''
    instance_id: str = ''
    registry_url: str = 'http://127.0.0.1:9090'
    heartbeat_interval: float = 10.0
    register_interval: float = 20.0
    register_attempts: int = 20
    register_delay: float = 0.25
    metadata: Dict[str, Any] = Field(default_factory=dict)

class AuthSettings(_Section):
    session_ttl: int = 3600

class Settings(BaseModel):
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: Dict[str, Any] = Field(default_factory=dict)

def build_settings(config: Dict[str, Any], environ: Mapping[str, str] = None) -> Settings:
    """Validates a raw config dict (plus environment overrides) into Settings."""
    merged = apply_env_overrides(config or {}, environ)
    # The services reach the registry through the same URL as the gateway unless told otherwise
    registry_url = merged.get('gateway', {}).get('registry_url')
    if registry_url and 'registry_url' not in merged.get('service', {}):
        merged.setdefault('service', {})['registry_url'] = registry_url
    return Settings.model_validate(merged)

def get_settings() -> Settings:
    return build_settings(get_config())
