class DiscoveryError(Exception):
    """Base class for registry and gateway errors."""
    status_code = 500


class ValidationError(DiscoveryError):
    """A required field is missing or malformed. Never retried."""
    status_code = 400


class NotFoundError(DiscoveryError):
    """Unknown service or instance on heartbeat/status."""
    status_code = 404


class TransientNetworkError(DiscoveryError):
    """A call to the registry failed at the transport level."""
    status_code = 503


class ResolutionError(DiscoveryError):
    """No target could be found for a service route."""
    status_code = 503


class StartupResolutionError(ResolutionError):
    """Static gateway mode could not resolve a referenced service at boot."""

    def __init__(self, service: str, registry: str = ""):
        self.service = service
        self.registry = registry
        where = f" from {registry}" if registry else ""
        super().__init__(f"Failed to resolve service target for {service}{where}")
