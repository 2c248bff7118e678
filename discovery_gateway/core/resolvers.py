import logging
import time
from typing import Callable, Dict, Iterable, Optional
from discovery_gateway.client.base import DiscoveryClient
from discovery_gateway.core.resolution_cache import ResolutionCache
from discovery_gateway.errors import TransientNetworkError, ResolutionError, StartupResolutionError

logger = logging.getLogger(__name__)

Resolver = Callable[[str, str, str], str]

def make_dynamic_resolver(client: DiscoveryClient, cache: ResolutionCache,
                          fallback_target: Optional[str] = None) -> Resolver:
    """Builds the per-request resolver used by service routes.

    Order of preference: a fresh answer from the registry, the last URL
    cached for the service, the static fallback target. If none is
    available the request fails with ResolutionError.
    """

    def resolve(service: str, method: str, path: str) -> str:
        try:
            url = client.resolve(service)
        except TransientNetworkError as e:
            logger.warning(f"Registry unavailable resolving {service} for {method} {path}: {e}")
            url = None
        except Exception as e:
            logger.error(f"Registry lookup for {service} failed: {e}")
            url = None

        if url:
            cache.remember(service, url)
            return url

        cached = cache.last_known(service)
        if cached:
            logger.info(f"Using cached target {cached} for {service}")
            return cached

        if fallback_target:
            logger.info(f"Using fallback target {fallback_target} for {service}")
            return fallback_target

        raise ResolutionError(f"service not found in registry: {service}")

    return resolve

def resolve_static_targets(client: DiscoveryClient, services: Iterable[str], attempts: int = 40,
                           delay: float = 0.25, fallback_target: Optional[str] = None,
                           registry_url: str = "",
                           sleep: Callable[[float], None] = time.sleep) -> Dict[str, str]:
    """Resolves each service once at startup, retrying a bounded number of times.

    Raises StartupResolutionError for the first service that can't be
    resolved when no fallback target is configured.
    """
    targets: Dict[str, str] = {}
    for service in services:
        if service in targets:
            continue
        resolved = None
        for attempt in range(max(1, attempts)):
            try:
                resolved = client.resolve(service)
            except TransientNetworkError as e:
                logger.debug(f"Attempt {attempt + 1} to resolve {service} failed: {e}")
                resolved = None
            if resolved:
                break
            if attempt + 1 < attempts:
                sleep(delay)

        if not resolved and fallback_target:
            logger.warning(f"Service {service} unresolved, using fallback target {fallback_target}")
            resolved = fallback_target

        if not resolved:
            raise StartupResolutionError(service, registry_url)

        logger.info(f"Resolved {service} -> {resolved}")
        targets[service] = resolved
    return targets
