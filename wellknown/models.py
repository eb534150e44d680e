"""Data models for the well-known readiness controller."""

import os
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .logging_config import get_logger

logger = get_logger(__name__)

API_SERVER_PORT_ENV = "KUBERNETES_SERVICE_PORT_HTTPS"
DEFAULT_API_SERVER_PORT = 443

WELL_KNOWN_ROUTE_DEGRADED = "WellKnownRouteDegraded"
WELL_KNOWN_AUTH_CONFIG_DEGRADED = "WellKnownAuthConfigDegraded"
WELL_KNOWN_PROGRESSING = "WellKnownProgressing"
WELL_KNOWN_AVAILABLE = "WellKnownAvailable"

# Conditions owned and defaulted by the controller. Any condition type produced
# during a sync pass must be listed here or it is dropped on aggregation.
KNOWN_CONDITION_TYPES = frozenset({
    WELL_KNOWN_ROUTE_DEGRADED,
    WELL_KNOWN_AUTH_CONFIG_DEGRADED,
    WELL_KNOWN_PROGRESSING,
    WELL_KNOWN_AVAILABLE,
})

SCOPES_SUPPORTED = (
    "user:check-access",
    "user:full",
    "user:info",
    "user:list-projects",
    "user:list-scoped-projects",
)


class ConditionStatus(str, Enum):
    """Status value of an operator condition."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class Condition(BaseModel):
    """A single operator status condition."""

    type: str = Field(..., description="Condition type, one of the known types")
    status: ConditionStatus = Field(..., description="Condition status")
    reason: str = Field("", description="Short machine readable reason")
    message: str = Field("", description="Human readable message")
    last_transition_time: Optional[datetime] = Field(None, description="Last time the status changed")

    def to_api(self) -> Dict[str, Any]:
        """Render the condition in the operator API (camelCase) shape."""
        data: Dict[str, Any] = {
            "type": self.type,
            "status": self.status.value,
            "reason": self.reason,
            "message": self.message,
        }
        transition = self.last_transition_time
        if transition is not None:
            if transition.tzinfo is not None:
                transition = transition.astimezone(timezone.utc)
            data["lastTransitionTime"] = transition.strftime("%Y-%m-%dT%H:%M:%SZ")
        return data

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Condition":
        """Build a condition from an operator API status entry.

        ``lastTransitionTime`` may be any RFC 3339 timestamp, other writers
        store fractional seconds or numeric offsets.
        """
        return cls(
            type=data.get("type", ""),
            status=data.get("status", ConditionStatus.UNKNOWN.value),
            reason=data.get("reason") or "",
            message=data.get("message") or "",
            last_transition_time=data.get("lastTransitionTime") or None,
        )


class ControllerConfig(BaseModel):
    """Configuration for the readiness controller."""

    namespace: str = Field("openshift-authentication", description="Namespace of the OAuth server")
    target_name: str = Field("oauth-openshift", description="Name of the route and service")
    container_port: int = Field(6443, description="Target port of the OAuth server service")
    router_secret_name: str = Field("v4-0-config-system-router-certs", description="Router certificates secret")
    auth_config_name: str = Field("cluster", description="Name of the cluster authentication config")
    ingress_config_name: str = Field("cluster", description="Name of the cluster ingress config")
    operator_name: str = Field("cluster", description="Name of the operator resource carrying status")
    api_server_namespace: str = Field("default", description="Namespace of the API server service")
    api_server_service: str = Field("kubernetes", description="API server service and endpoints name")
    api_server_name: str = Field("kubernetes.default.svc", description="Server name verified on every request")
    api_server_port: int = Field(DEFAULT_API_SERVER_PORT, description="Service port of the API server")
    ca_bundle_path: str = Field("/var/run/secrets/kubernetes.io/serviceaccount/ca.crt",
                                description="CA bundle used to trust the API server")
    resync_interval: int = Field(30, description="Seconds between sync passes")
    request_timeout: float = Field(10.0, description="Timeout in seconds for a single well-known request")
    kubeconfig_path: Optional[str] = Field(None, description="Path to kubeconfig file")
    context: Optional[str] = Field(None, description="Kubernetes context name")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "ControllerConfig":
        """Build a config, reading the API server port from the environment.

        An absent or unparsable port falls back to the default with a warning.
        """
        environ = os.environ if environ is None else environ
        if "api_server_port" not in overrides:
            raw = environ.get(API_SERVER_PORT_ENV)
            try:
                overrides["api_server_port"] = int(raw)
            except (TypeError, ValueError) as e:
                logger.warning("Defaulting API server port due to parsing error",
                               env=API_SERVER_PORT_ENV,
                               value=raw,
                               default=DEFAULT_API_SERVER_PORT,
                               error=str(e))
                overrides["api_server_port"] = DEFAULT_API_SERVER_PORT
        return cls(**overrides)


class DesiredRouteSpec(BaseModel):
    """Route shape the controller expects, derived from the ingress config."""

    model_config = ConfigDict(frozen=True)

    host: str
    target_service_name: str
    target_port: int
    tls_termination: str = "passthrough"
    insecure_edge_termination_policy: str = "Redirect"

    @classmethod
    def from_ingress(cls, ingress: Mapping[str, Any], config: ControllerConfig) -> "DesiredRouteSpec":
        domain = (ingress.get("spec") or {}).get("domain", "")
        return cls(
            host=f"{config.target_name}.{domain}",
            target_service_name=config.target_name,
            target_port=config.container_port,
        )


class BackendPool(BaseModel):
    """Addresses backing a service port, split by readiness."""

    ready_addresses: List[str] = Field(default_factory=list)
    not_ready_addresses: List[str] = Field(default_factory=list)

    @property
    def usable(self) -> bool:
        # partial readiness counts as not ready
        return not self.not_ready_addresses and bool(self.ready_addresses)


class DiscoveryDocument(BaseModel):
    """OAuth authorization server metadata served at the well-known path."""

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    scopes_supported: List[str]
    response_types_supported: List[str]
    grant_types_supported: List[str]
    code_challenge_methods_supported: List[str]

    @classmethod
    def for_host(cls, host: str) -> "DiscoveryDocument":
        """Expected document for the OAuth server exposed at ``host``."""
        return cls(
            issuer=f"https://{host}",
            authorization_endpoint=f"https://{host}/oauth/authorize",
            token_endpoint=f"https://{host}/oauth/token",
            scopes_supported=list(SCOPES_SUPPORTED),
            response_types_supported=["code", "token"],
            grant_types_supported=["authorization_code", "implicit"],
            code_challenge_methods_supported=["plain", "S256"],
        )
