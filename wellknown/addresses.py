"""Resolution of the ready backend addresses behind a service port."""

from typing import Any, List, Optional

from kubernetes.client.rest import ApiException

from .errors import ConfigurationError, NotFoundError, NotReadyError, RetrievalError
from .logging_config import get_logger, log_function_entry, log_function_exit
from .models import BackendPool, ControllerConfig

logger = get_logger(__name__)


def int_value(value: Any) -> int:
    """Integer value of an int-or-string port, 0 for named ports."""
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _is_tcp(port: Any) -> bool:
    # the API server defaults an unset protocol to TCP
    return (port.protocol or "TCP") == "TCP"


def target_port_for(service: Any, service_port: int) -> Optional[int]:
    """Container port behind the TCP ``service_port`` of ``service``."""
    ports = service.spec.ports if service.spec else None
    for port in ports or []:
        target_port = int_value(port.target_port)
        if target_port != 0 and _is_tcp(port) and port.port == service_port:
            return target_port
    return None


def subset_has_port(subset: Any, target_port: int) -> bool:
    return any(_is_tcp(port) and port.port == target_port for port in subset.ports or [])


def pool_for(endpoints: Any, target_port: int) -> Optional[BackendPool]:
    """Pool of the first endpoint subset exposing ``target_port``.

    Later subsets are ignored even when the first match is not ready.
    """
    for subset in endpoints.subsets or []:
        if not subset_has_port(subset, target_port):
            continue
        return BackendPool(
            ready_addresses=[a.ip for a in subset.addresses or []],
            not_ready_addresses=[a.ip for a in subset.not_ready_addresses or []],
        )
    return None


class AddressResolver:
    """Finds the socket addresses serving a service port, all or nothing."""

    def __init__(self, cluster_client: Any, controller_config: ControllerConfig):
        self.cluster_client = cluster_client
        self.controller_config = controller_config

    async def resolve(self, service_name: Optional[str] = None, namespace: Optional[str] = None) -> List[str]:
        """Return ``ip:port`` for every ready backend of the service.

        Raises:
            ConfigurationError: the service has no TCP port matching the configured port.
            NotReadyError: some backend is not ready, or none is ready.
            NotFoundError: the service or endpoints are missing, or no subset exposes the port.
            RetrievalError: looking up the service or endpoints failed.
        """
        service_name = service_name or self.controller_config.api_server_service
        namespace = namespace or self.controller_config.api_server_namespace
        service_port = self.controller_config.api_server_port
        log_function_entry(logger, "resolve", service=service_name, namespace=namespace, port=service_port)

        try:
            service = await self.cluster_client.get_service(namespace, service_name)
        except ApiException as e:
            raise RetrievalError(f"failed to get service {namespace}/{service_name}: {e.reason}") from e
        if service is None:
            raise NotFoundError(f"service {namespace}/{service_name} not found")

        target_port = target_port_for(service, service_port)
        if target_port is None:
            raise ConfigurationError(
                f"unable to find target port for TCP port {service_port} of service {namespace}/{service_name}")

        try:
            endpoints = await self.cluster_client.get_endpoints(namespace, service_name)
        except ApiException as e:
            raise RetrievalError(f"failed to get endpoints {namespace}/{service_name}: {e.reason}") from e
        if endpoints is None:
            raise NotFoundError(f"endpoints {namespace}/{service_name} not found")

        pool = pool_for(endpoints, target_port)
        if pool is None:
            raise NotFoundError(f"unable to find port {target_port} in endpoints {namespace}/{service_name}")
        if not pool.usable:
            raise NotReadyError(
                f"endpoints {namespace}/{service_name} are not ready: "
                f"{len(pool.ready_addresses)} ready, {len(pool.not_ready_addresses)} not ready")

        addresses = [join_host_port(ip, target_port) for ip in pool.ready_addresses]
        log_function_exit(logger, "resolve", service=service_name, addresses=addresses)
        return addresses
