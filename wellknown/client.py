"""Kubernetes access for the readiness controller."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from .conditions import merge_conditions
from .logging_config import get_logger, log_function_entry, log_function_exit, log_k8s_operation
from .models import Condition, ControllerConfig

logger = get_logger(__name__)

CONFIG_GROUP = "config.openshift.io"
OPERATOR_GROUP = "operator.openshift.io"
ROUTE_GROUP = "route.openshift.io"
API_VERSION = "v1"


class ClusterClient:
    """Reads and writes the handful of objects the controller works with.

    Lookups return ``None`` when the object does not exist and raise
    ``ApiException`` for any other failure.
    """

    def __init__(self, controller_config: ControllerConfig):
        self.controller_config = controller_config
        self._k8s_client: Optional[client.ApiClient] = None
        self._core_v1: Optional[client.CoreV1Api] = None
        self._custom_objects: Optional[client.CustomObjectsApi] = None
        logger.debug("ClusterClient initialized", namespace=controller_config.namespace)

    async def connect(self) -> None:
        """Initialize connection to the Kubernetes cluster."""
        log_function_entry(logger, "connect",
                           kubeconfig_path=self.controller_config.kubeconfig_path,
                           context=self.controller_config.context)

        try:
            if self.controller_config.kubeconfig_path:
                logger.debug("Loading kubeconfig from file",
                             kubeconfig_path=self.controller_config.kubeconfig_path,
                             context=self.controller_config.context)
                config.load_kube_config(
                    config_file=self.controller_config.kubeconfig_path,
                    context=self.controller_config.context
                )
            else:
                logger.debug("Loading in-cluster config")
                config.load_incluster_config()

            self._k8s_client = client.ApiClient()
            self._core_v1 = client.CoreV1Api(self._k8s_client)
            self._custom_objects = client.CustomObjectsApi(self._k8s_client)

            logger.info("Connected to cluster")
            log_function_exit(logger, "connect", status="success")

        except Exception as e:
            logger.error("Failed to connect to cluster",
                         error=str(e),
                         kubeconfig_path=self.controller_config.kubeconfig_path,
                         context=self.controller_config.context)
            log_function_exit(logger, "connect", status="error", error=str(e))
            raise

    async def _ensure_connected(self) -> None:
        if not self._custom_objects or not self._core_v1:
            logger.debug("API client not initialized, connecting")
            await self.connect()

    async def get_authentication(self) -> Optional[Dict[str, Any]]:
        """Get the cluster authentication config."""
        name = self.controller_config.auth_config_name
        return await self._get_cluster_object(CONFIG_GROUP, "authentications", name)

    async def get_ingress_config(self) -> Optional[Dict[str, Any]]:
        """Get the cluster ingress config."""
        name = self.controller_config.ingress_config_name
        return await self._get_cluster_object(CONFIG_GROUP, "ingresses", name)

    async def get_operator(self) -> Optional[Dict[str, Any]]:
        """Get the operator resource whose status carries our conditions."""
        name = self.controller_config.operator_name
        return await self._get_cluster_object(OPERATOR_GROUP, "authentications", name)

    async def _get_cluster_object(self, group: str, plural: str, name: str) -> Optional[Dict[str, Any]]:
        await self._ensure_connected()
        log_k8s_operation(logger, "get", f"{plural}.{group}/{name}")
        try:
            return self._custom_objects.get_cluster_custom_object(
                group=group,
                version=API_VERSION,
                plural=plural,
                name=name
            )
        except ApiException as e:
            if e.status == 404:
                logger.debug("Object not found", group=group, plural=plural, name=name)
                return None
            raise

    async def get_route(self) -> Optional[Dict[str, Any]]:
        """Get the OAuth server route."""
        await self._ensure_connected()
        name = self.controller_config.target_name
        namespace = self.controller_config.namespace
        log_k8s_operation(logger, "get", f"route/{name}", namespace=namespace)
        try:
            return self._custom_objects.get_namespaced_custom_object(
                group=ROUTE_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural="routes",
                name=name
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    async def create_route(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create the OAuth server route."""
        await self._ensure_connected()
        namespace = self.controller_config.namespace
        log_k8s_operation(logger, "create", f"route/{body['metadata']['name']}", namespace=namespace)
        return self._custom_objects.create_namespaced_custom_object(
            group=ROUTE_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural="routes",
            body=body
        )

    async def delete_route(self, name: str, uid: str) -> None:
        """Delete the route, only if it is still the object with ``uid``."""
        await self._ensure_connected()
        namespace = self.controller_config.namespace
        log_k8s_operation(logger, "delete", f"route/{name}", namespace=namespace, uid=uid)
        self._custom_objects.delete_namespaced_custom_object(
            group=ROUTE_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural="routes",
            name=name,
            body=client.V1DeleteOptions(preconditions=client.V1Preconditions(uid=uid))
        )

    async def get_secret(self, namespace: str, name: str) -> Optional[client.V1Secret]:
        await self._ensure_connected()
        log_k8s_operation(logger, "get", f"secret/{name}", namespace=namespace)
        try:
            return self._core_v1.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    async def get_service(self, namespace: str, name: str) -> Optional[client.V1Service]:
        await self._ensure_connected()
        log_k8s_operation(logger, "get", f"service/{name}", namespace=namespace)
        try:
            return self._core_v1.read_namespaced_service(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    async def get_endpoints(self, namespace: str, name: str) -> Optional[client.V1Endpoints]:
        await self._ensure_connected()
        log_k8s_operation(logger, "get", f"endpoints/{name}", namespace=namespace)
        try:
            return self._core_v1.read_namespaced_endpoints(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    async def update_conditions(self, conditions: List[Condition]) -> Dict[str, Any]:
        """Write conditions into the operator status.

        The write carries the observed resourceVersion, so a concurrent update
        makes it fail with a conflict instead of overwriting newer status.
        """
        await self._ensure_connected()
        name = self.controller_config.operator_name
        log_function_entry(logger, "update_conditions",
                           operator=name,
                           conditions=[c.type for c in conditions])

        operator = await self.get_operator()
        if operator is None:
            raise ApiException(status=404, reason=f"operator resource {name} not found")

        status = dict(operator.get("status") or {})
        status["conditions"] = merge_conditions(status.get("conditions") or [], conditions, datetime.utcnow())

        body = {
            "apiVersion": f"{OPERATOR_GROUP}/{API_VERSION}",
            "kind": operator.get("kind", "Authentication"),
            "metadata": {
                "name": name,
                "resourceVersion": operator.get("metadata", {}).get("resourceVersion"),
            },
            "spec": operator.get("spec", {}),
            "status": status,
        }
        log_k8s_operation(logger, "update_status", f"authentications.{OPERATOR_GROUP}/{name}")
        updated = self._custom_objects.replace_cluster_custom_object_status(
            group=OPERATOR_GROUP,
            version=API_VERSION,
            plural="authentications",
            name=name,
            body=body
        )

        log_function_exit(logger, "update_conditions", operator=name, status="success")
        return updated

    async def disconnect(self) -> None:
        """Clean up the connection."""
        if self._k8s_client:
            self._k8s_client.close()
