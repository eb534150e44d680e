"""Sync pass of the well-known readiness controller."""

import asyncio
from typing import Any, Callable, List, Optional, Tuple

import httpx
from kubernetes.client.rest import ApiException

from .addresses import AddressResolver
from .conditions import ConditionAggregator
from .errors import (
    InvalidSpecError,
    MissingSecretError,
    NotReadyError,
    RetrievalError,
    SecretRetrievalError,
    WellKnownError,
)
from .logging_config import get_logger, log_function_entry, log_function_exit, log_sync_event
from .models import (
    WELL_KNOWN_AUTH_CONFIG_DEGRADED,
    WELL_KNOWN_AVAILABLE,
    WELL_KNOWN_PROGRESSING,
    WELL_KNOWN_ROUTE_DEGRADED,
    Condition,
    ConditionStatus,
    ControllerConfig,
)
from .route import RouteReconciler
from .transport import read_ca_bundle, transport_for
from .verifier import DiscoveryVerifier, requires_verification

logger = get_logger(__name__)

TransportFactory = Callable[[Optional[bytes], float], httpx.AsyncClient]


def not_ready_conditions(message: str, reason: str = "NotReady") -> List[Condition]:
    """Progressing and not-Available findings for an endpoint that is not served yet."""
    return [
        Condition(
            type=WELL_KNOWN_PROGRESSING,
            status=ConditionStatus.TRUE,
            reason=reason,
            message=f"The well-known endpoint is not yet available: {message}",
        ),
        Condition(
            type=WELL_KNOWN_AVAILABLE,
            status=ConditionStatus.FALSE,
            reason=reason,
            message=f"The well-known endpoint is not yet available: {message}",
        ),
    ]


def _degraded(condition_type: str, reason: str, message: str) -> List[Condition]:
    return [Condition(type=condition_type, status=ConditionStatus.TRUE, reason=reason, message=message)]


class WellKnownReadyController:
    """Reports whether the OAuth well-known endpoint is served correctly.

    Each ``sync`` gathers findings from the auth config, the route and a live
    check of the API server backends, then publishes one condition per known
    type. Passes on the same instance never overlap.
    """

    def __init__(self, cluster_client: Any, controller_config: ControllerConfig,
                 transport_factory: TransportFactory = transport_for):
        self.cluster_client = cluster_client
        self.config = controller_config
        self.transport_factory = transport_factory
        self.resolver = AddressResolver(cluster_client, controller_config)
        self.reconciler = RouteReconciler(cluster_client, controller_config)
        self.verifier = DiscoveryVerifier(controller_config)
        self.aggregator = ConditionAggregator(status_writer=cluster_client)
        self._lock = asyncio.Lock()

    async def sync(self) -> List[Condition]:
        """Run one reconciliation pass and publish the resulting conditions."""
        async with self._lock:
            log_function_entry(logger, "sync")
            found: List[Condition] = []

            auth_config, auth_conditions = await self.get_auth_config()
            found.extend(auth_conditions)

            route, route_conditions = await self.get_route()
            found.extend(route_conditions)

            if auth_config is not None and route is not None:
                ready, message = await self.check_endpoints_ready(auth_config, route)
                if not ready and message:
                    found.extend(not_ready_conditions(message))

            conditions = await self.aggregator.publish(found)
            log_function_exit(logger, "sync", findings=len(found))
            return conditions

    async def get_auth_config(self) -> Tuple[Optional[dict], List[Condition]]:
        # a missing auth config is a prerequisite not met yet, not a failure
        try:
            return await self.cluster_client.get_authentication(), []
        except ApiException as e:
            logger.warning("Unable to get cluster authentication config", error=str(e))
            return None, _degraded(WELL_KNOWN_AUTH_CONFIG_DEGRADED, "GetFailed",
                                   f"Unable to get cluster authentication config: {e.reason}")

    async def get_route(self) -> Tuple[Optional[dict], List[Condition]]:
        """Reconcile the route and return it once it is admitted and valid."""
        route_name = self.config.target_name
        try:
            ingress = await self.cluster_client.get_ingress_config()
        except ApiException as e:
            logger.warning("Unable to get cluster ingress config", error=str(e))
            return None, _degraded(WELL_KNOWN_ROUTE_DEGRADED, "GetFailed",
                                   f"Unable to get cluster ingress config: {e.reason}")
        if ingress is None:
            return None, []

        try:
            route, _ = await self.reconciler.reconcile(ingress)
        except SecretRetrievalError as e:
            return None, _degraded(WELL_KNOWN_ROUTE_DEGRADED, "RouterCertsGetFailed",
                                   f"Unable to get router certificates: {e}")
        except RetrievalError as e:
            return None, _degraded(WELL_KNOWN_ROUTE_DEGRADED, "GetFailed",
                                   f"Unable to get {route_name} route: {e}")
        except MissingSecretError as e:
            return None, _degraded(WELL_KNOWN_ROUTE_DEGRADED, "MissingRouterCerts", str(e))
        except InvalidSpecError as e:
            log_sync_event(logger, "route_invalid", route=route_name, reason=str(e))
            return None, not_ready_conditions(str(e), reason="RouteInvalid")
        except NotReadyError as e:
            return None, not_ready_conditions(str(e))
        return route, []

    async def check_endpoints_ready(self, auth_config: dict, route: dict) -> Tuple[bool, str]:
        """Check every API server backend for the expected discovery document.

        Resolution, transport and request failures are reported as not ready.
        """
        if not requires_verification(auth_config):
            logger.debug("Skipping well-known verification for externally managed metadata")
            return True, ""

        try:
            ca_data = read_ca_bundle(self.config.ca_bundle_path)
            addresses = await self.resolver.resolve()
            async with self.transport_factory(ca_data, self.config.request_timeout) as transport:
                ready, message = await self.verifier.verify(transport, route, addresses)
        except WellKnownError as e:
            log_sync_event(logger, "endpoint_not_ready", error=str(e))
            return False, str(e)

        log_sync_event(logger, "endpoint_checked", ready=ready, message=message)
        return ready, message
