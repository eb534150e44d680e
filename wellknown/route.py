"""Reconciliation of the OAuth server route against its desired spec."""

import copy
from typing import Any, Dict, Mapping, Optional, Tuple

from kubernetes.client.rest import ApiException

from .addresses import int_value
from .errors import InvalidSpecError, MissingSecretError, NotAdmittedError, RetrievalError, SecretRetrievalError
from .logging_config import get_logger, log_function_entry, log_function_exit, log_sync_event
from .models import ControllerConfig, DesiredRouteSpec

logger = get_logger(__name__)


def default_route(desired: DesiredRouteSpec, config: ControllerConfig) -> Dict[str, Any]:
    """Route object created when none exists."""
    return {
        "apiVersion": "route.openshift.io/v1",
        "kind": "Route",
        "metadata": {
            "name": config.target_name,
            "namespace": config.namespace,
            "labels": {"app": config.target_name},
        },
        "spec": {
            # mimics what a subdomain route would get
            "host": desired.host,
            "to": {"kind": "Service", "name": desired.target_service_name},
            "port": {"targetPort": desired.target_port},
            "tls": {
                "termination": desired.tls_termination,
                "insecureEdgeTerminationPolicy": desired.insecure_edge_termination_policy,
            },
        },
    }


def is_ingress_admitted(route_ingress: Mapping[str, Any]) -> bool:
    for condition in route_ingress.get("conditions") or []:
        if condition.get("type") == "Admitted" and condition.get("status") == "True":
            return True
    return False


def canonical_host(route: Mapping[str, Any], desired_host: str) -> Optional[str]:
    """``desired_host`` if a router admitted the route there, else None."""
    for route_ingress in (route.get("status") or {}).get("ingress") or []:
        if route_ingress.get("host") != desired_host:
            continue
        if not is_ingress_admitted(route_ingress):
            continue
        return desired_host
    return None


def validate_route(route: Mapping[str, Any], desired: DesiredRouteSpec) -> None:
    """Raise InvalidSpecError on the first field that differs from ``desired``."""
    # route spec may hold key material, never put it in messages
    spec = route.get("spec") or {}
    name = (route.get("metadata") or {}).get("name")

    if (spec.get("to") or {}).get("name") != desired.target_service_name:
        raise InvalidSpecError(f"route {name} targets a wrong service - needs {desired.target_service_name}")

    if int_value((spec.get("port") or {}).get("targetPort")) != desired.target_port:
        raise InvalidSpecError(f"expected port '{desired.target_port}' for route {name}")

    tls = spec.get("tls")
    if not tls:
        raise InvalidSpecError(f"TLS needs to be configured for route {name}")

    if tls.get("termination") != desired.tls_termination:
        raise InvalidSpecError(
            f"route {name} contains wrong TLS termination - '{desired.tls_termination}' is required")

    if tls.get("insecureEdgeTerminationPolicy") != desired.insecure_edge_termination_policy:
        raise InvalidSpecError(
            f"route {name} contains wrong insecure termination policy - "
            f"'{desired.insecure_edge_termination_policy}' is required")


class RouteReconciler:
    """Ensures the OAuth server route exists, is admitted and matches its desired spec.

    A route that drifted is deleted rather than patched; the next pass
    recreates it from the desired spec.
    """

    def __init__(self, cluster_client: Any, controller_config: ControllerConfig):
        self.cluster_client = cluster_client
        self.controller_config = controller_config

    async def reconcile(self, ingress: Mapping[str, Any]) -> Tuple[Dict[str, Any], Any]:
        """Return the validated route and the router certificates secret.

        The returned route is a copy whose ``spec.host`` is the admitted
        canonical host.
        """
        desired = DesiredRouteSpec.from_ingress(ingress, self.controller_config)
        log_function_entry(logger, "reconcile", host=desired.host)

        route = await self._get_or_create(desired)

        host = canonical_host(route, desired.host)
        if host is None:
            admitted_at = [i.get("host") for i in (route.get("status") or {}).get("ingress") or []]
            raise NotAdmittedError(f"route is not available at canonical host {desired.host}: {admitted_at}")

        route = copy.deepcopy(route)
        route.setdefault("spec", {})["host"] = host

        try:
            validate_route(route, desired)
        except InvalidSpecError:
            await self._delete_invalid(route)
            raise

        router_secret = await self._get_router_secret()

        log_function_exit(logger, "reconcile", host=host, status="success")
        return route, router_secret

    async def _get_or_create(self, desired: DesiredRouteSpec) -> Dict[str, Any]:
        try:
            route = await self.cluster_client.get_route()
            if route is None:
                log_sync_event(logger, "route_created", host=desired.host)
                route = await self.cluster_client.create_route(default_route(desired, self.controller_config))
        except ApiException as e:
            raise RetrievalError(f"failed to get or create route {self.controller_config.target_name}: {e.reason}") from e
        return route

    async def _delete_invalid(self, route: Mapping[str, Any]) -> None:
        metadata = route.get("metadata") or {}
        name = metadata.get("name", self.controller_config.target_name)
        log_sync_event(logger, "route_deleted", route=name, uid=metadata.get("uid"))
        try:
            await self.cluster_client.delete_route(name, metadata.get("uid"))
        except ApiException as e:
            if e.status != 404:
                logger.info("Failed to delete invalid route", route=name, error=str(e))

    async def _get_router_secret(self) -> Any:
        namespace = self.controller_config.namespace
        name = self.controller_config.router_secret_name
        try:
            secret = await self.cluster_client.get_secret(namespace, name)
        except ApiException as e:
            raise SecretRetrievalError(f"failed to get router secret {namespace}/{name}: {e.reason}") from e
        if secret is None:
            raise MissingSecretError(f"router secret {namespace}/{name} not found")
        if not secret.data:
            raise MissingSecretError(f"router secret {namespace}/{name} is empty")
        return secret
