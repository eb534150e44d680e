"""Tests for well-known controller models."""

import json
from datetime import datetime

import pytest
from pydantic import ValidationError

from wellknown.models import (
    DEFAULT_API_SERVER_PORT,
    BackendPool,
    Condition,
    ConditionStatus,
    ControllerConfig,
    DesiredRouteSpec,
    DiscoveryDocument,
)
from wellknown.verifier import oauth_metadata


class TestControllerConfig:
    """Tests for ControllerConfig model."""

    def test_defaults(self):
        """Test the fixed names the controller works with."""
        config = ControllerConfig()

        assert config.namespace == "openshift-authentication"
        assert config.target_name == "oauth-openshift"
        assert config.container_port == 6443
        assert config.api_server_port == DEFAULT_API_SERVER_PORT
        assert config.api_server_name == "kubernetes.default.svc"

    def test_from_env_reads_port(self):
        """Test the API server port is read from the environment."""
        config = ControllerConfig.from_env({"KUBERNETES_SERVICE_PORT_HTTPS": "6443"})
        assert config.api_server_port == 6443

    @pytest.mark.parametrize("environ", [{}, {"KUBERNETES_SERVICE_PORT_HTTPS": "https"}])
    def test_from_env_defaults_port(self, environ):
        """Test an absent or unparsable port falls back to 443."""
        config = ControllerConfig.from_env(environ)
        assert config.api_server_port == 443

    def test_from_env_keeps_explicit_port(self):
        """Test an explicit port wins over the environment."""
        config = ControllerConfig.from_env({"KUBERNETES_SERVICE_PORT_HTTPS": "6443"}, api_server_port=8443)
        assert config.api_server_port == 8443


class TestCondition:
    """Tests for Condition model."""

    def test_to_api(self):
        condition = Condition(
            type="WellKnownAvailable",
            status=ConditionStatus.FALSE,
            reason="NotReady",
            message="not yet",
            last_transition_time=datetime(2024, 1, 2, 3, 4, 5),
        )

        assert condition.to_api() == {
            "type": "WellKnownAvailable",
            "status": "False",
            "reason": "NotReady",
            "message": "not yet",
            "lastTransitionTime": "2024-01-02T03:04:05Z",
        }

    def test_from_api(self):
        condition = Condition.from_api({"type": "WellKnownProgressing", "status": "True"})

        assert condition.status is ConditionStatus.TRUE
        assert condition.reason == ""
        assert condition.last_transition_time is None

    def test_from_api_fractional_seconds(self):
        condition = Condition.from_api({
            "type": "WellKnownAvailable",
            "status": "True",
            "lastTransitionTime": "2024-01-02T03:04:05.678Z",
        })

        assert condition.to_api()["lastTransitionTime"] == "2024-01-02T03:04:05Z"

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            Condition(type="WellKnownAvailable", status="Maybe")


class TestDesiredRouteSpec:
    """Tests for DesiredRouteSpec model."""

    def test_from_ingress(self):
        desired = DesiredRouteSpec.from_ingress({"spec": {"domain": "apps.example.com"}}, ControllerConfig())

        assert desired.host == "oauth-openshift.apps.example.com"
        assert desired.target_service_name == "oauth-openshift"
        assert desired.target_port == 6443
        assert desired.tls_termination == "passthrough"
        assert desired.insecure_edge_termination_policy == "Redirect"

    def test_frozen(self):
        desired = DesiredRouteSpec.from_ingress({"spec": {"domain": "example.com"}}, ControllerConfig())
        with pytest.raises(ValidationError):
            desired.host = "other.example.com"


class TestBackendPool:
    """Tests for BackendPool readiness."""

    def test_all_ready_is_usable(self):
        assert BackendPool(ready_addresses=["10.0.0.1", "10.0.0.2"]).usable

    def test_partial_readiness_is_not_usable(self):
        pool = BackendPool(ready_addresses=["10.0.0.1", "10.0.0.2"], not_ready_addresses=["10.0.0.3"])
        assert not pool.usable

    def test_empty_is_not_usable(self):
        assert not BackendPool().usable


class TestDiscoveryDocument:
    """Tests for DiscoveryDocument model."""

    def test_for_host(self):
        document = DiscoveryDocument.for_host("example.com")

        assert document.issuer == "https://example.com"
        assert document.authorization_endpoint == "https://example.com/oauth/authorize"
        assert document.token_endpoint == "https://example.com/oauth/token"
        assert document.scopes_supported == [
            "user:check-access",
            "user:full",
            "user:info",
            "user:list-projects",
            "user:list-scoped-projects",
        ]
        assert document.response_types_supported == ["code", "token"]
        assert document.grant_types_supported == ["authorization_code", "implicit"]
        assert document.code_challenge_methods_supported == ["plain", "S256"]

    def test_generated_metadata_parses_back(self):
        """Test the published JSON parses to the expected document."""
        parsed = json.loads(oauth_metadata("example.com"))

        assert parsed == DiscoveryDocument.for_host("example.com").model_dump()
        assert DiscoveryDocument.model_validate(parsed) == DiscoveryDocument.for_host("example.com")

    def test_list_order_matters(self):
        data = DiscoveryDocument.for_host("example.com").model_dump()
        data["response_types_supported"] = ["token", "code"]

        assert DiscoveryDocument.model_validate(data) != DiscoveryDocument.for_host("example.com")

    def test_extra_keys_rejected(self):
        data = DiscoveryDocument.for_host("example.com").model_dump()
        data["revocation_endpoint"] = "https://example.com/oauth/revoke"

        with pytest.raises(ValidationError):
            DiscoveryDocument.model_validate(data)
