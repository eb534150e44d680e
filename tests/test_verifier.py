"""Tests for the discovery document verifier."""

import httpx
import pytest

from tests.helpers import auth_config, route
from wellknown.errors import EndpointCheckError
from wellknown.models import ControllerConfig, DiscoveryDocument
from wellknown.verifier import DiscoveryVerifier, oauth_metadata, requires_verification

HOST = "oauth-openshift.example.com"
ADDRESSES = ["10.0.0.1:6443", "10.0.0.2:6443", "10.0.0.3:6443"]


def mock_transport(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def serve_expected(request):
    return httpx.Response(200, content=oauth_metadata(HOST).encode())


class TestRequiresVerification:
    """Tests for skipping verification of externally managed metadata."""

    def test_integrated_oauth(self):
        assert requires_verification(auth_config())

    def test_custom_metadata(self):
        assert not requires_verification(auth_config(metadata_name="my-metadata"))

    def test_other_authentication_type(self):
        assert not requires_verification(auth_config(auth_type="None"))


class TestDiscoveryVerifier:
    """Tests for DiscoveryVerifier."""

    @pytest.fixture
    def verifier(self):
        return DiscoveryVerifier(ControllerConfig())

    @pytest.mark.asyncio
    async def test_all_addresses_serve_expected_document(self, verifier):
        seen = []

        def handler(request):
            seen.append(request)
            return serve_expected(request)

        async with mock_transport(handler) as transport:
            ready, message = await verifier.verify(transport, route(host=HOST), ADDRESSES)

        assert ready is True
        assert message == ""
        assert [str(r.url) for r in seen] == [
            f"https://{address}/.well-known/oauth-authorization-server" for address in ADDRESSES
        ]
        assert all(r.extensions.get("sni_hostname") == "kubernetes.default.svc" for r in seen)

    @pytest.mark.asyncio
    async def test_stops_at_first_failing_address(self, verifier):
        """Test the remaining addresses are not requested once one fails."""
        seen = []

        def handler(request):
            seen.append(request.url.host)
            return httpx.Response(503)

        async with mock_transport(handler) as transport:
            ready, message = await verifier.verify(transport, route(host=HOST), ADDRESSES)

        assert ready is False
        assert seen == ["10.0.0.1"]
        assert "got '503 Service Unavailable' status" in message

    @pytest.mark.asyncio
    async def test_document_mismatch(self, verifier):
        def handler(request):
            return httpx.Response(200, content=oauth_metadata("oauth.other.com").encode())

        async with mock_transport(handler) as transport:
            ready, message = await verifier.verify(transport, route(host=HOST), ADDRESSES[:1])

        assert ready is False
        assert "does not match expectations" in message

    @pytest.mark.asyncio
    async def test_document_with_unexpected_shape(self, verifier):
        def handler(request):
            data = DiscoveryDocument.for_host(HOST).model_dump()
            data["extra"] = True
            return httpx.Response(200, json=data)

        async with mock_transport(handler) as transport:
            ready, message = await verifier.verify(transport, route(host=HOST), ADDRESSES[:1])

        assert ready is False
        assert "does not match expectations" in message

    @pytest.mark.asyncio
    async def test_second_address_mismatch(self, verifier):
        def handler(request):
            if request.url.host == "10.0.0.2":
                return httpx.Response(200, json={"issuer": f"https://{HOST}"})
            return serve_expected(request)

        async with mock_transport(handler) as transport:
            ready, message = await verifier.verify(transport, route(host=HOST), ADDRESSES)

        assert ready is False
        assert "10.0.0.2:6443" in message

    @pytest.mark.asyncio
    async def test_connection_failure_raises(self, verifier):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_transport(handler) as transport:
            with pytest.raises(EndpointCheckError, match="failed to GET well-known"):
                await verifier.verify(transport, route(host=HOST), ADDRESSES)

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, verifier):
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        async with mock_transport(handler) as transport:
            with pytest.raises(EndpointCheckError, match="JSON"):
                await verifier.verify(transport, route(host=HOST), ADDRESSES)

    @pytest.mark.asyncio
    async def test_no_addresses_is_ready(self, verifier):
        async with mock_transport(serve_expected) as transport:
            assert await verifier.verify(transport, route(host=HOST), []) == (True, "")
