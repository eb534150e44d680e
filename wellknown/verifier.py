"""Live verification of the OAuth well-known discovery document."""

import json
from typing import Any, Iterable, Mapping, Tuple

import httpx
from pydantic import ValidationError

from .errors import EndpointCheckError
from .logging_config import get_logger, log_function_entry, log_function_exit
from .models import ControllerConfig, DiscoveryDocument

logger = get_logger(__name__)

WELL_KNOWN_PATH = "/.well-known/oauth-authorization-server"
INTEGRATED_OAUTH = "IntegratedOAuth"


def oauth_metadata(host: str) -> str:
    """JSON text of the discovery document the OAuth server at ``host`` publishes."""
    return json.dumps(DiscoveryDocument.for_host(host).model_dump(), indent=2)


def requires_verification(auth_config: Mapping[str, Any]) -> bool:
    """False when the cluster does not serve our generated document.

    A user supplied metadata config map, or an authentication type other than
    the integrated OAuth server, publishes a document we cannot predict.
    """
    spec = auth_config.get("spec") or {}
    if (spec.get("oauthMetadata") or {}).get("name"):
        return False
    return spec.get("type") == INTEGRATED_OAUTH


class DiscoveryVerifier:
    """Checks every backend address for the expected discovery document."""

    def __init__(self, controller_config: ControllerConfig):
        self.controller_config = controller_config

    async def verify(self, transport: httpx.AsyncClient, route: Mapping[str, Any],
                     addresses: Iterable[str]) -> Tuple[bool, str]:
        """Check the backends one after another, stopping at the first failure.

        Returns:
            ``(True, "")`` when every address serves the expected document,
            otherwise ``(False, reason)`` for the first address that does not.

        Raises:
            EndpointCheckError: a request failed at the transport level or the body
                was not JSON.
        """
        host = (route.get("spec") or {}).get("host", "")
        expected = DiscoveryDocument.for_host(host)
        log_function_entry(logger, "verify", host=host)

        for address in addresses:
            ready, message = await self.check_address(transport, address, expected)
            if not ready:
                log_function_exit(logger, "verify", host=host, ready=False, address=address)
                return False, message

        log_function_exit(logger, "verify", host=host, ready=True)
        return True, ""

    async def check_address(self, transport: httpx.AsyncClient, address: str,
                            expected: DiscoveryDocument) -> Tuple[bool, str]:
        url = f"https://{address}{WELL_KNOWN_PATH}"
        logger.debug("Probing well-known endpoint", url=url, server_name=self.controller_config.api_server_name)

        try:
            # dial the address directly but verify the certificate for the API server name
            response = await transport.get(url, extensions={"sni_hostname": self.controller_config.api_server_name})
        except httpx.HTTPError as e:
            raise EndpointCheckError(f"failed to GET well-known {url}: {e}") from e

        if response.status_code != 200:
            status = f"{response.status_code} {response.reason_phrase}".strip()
            return False, f"got '{status}' status while trying to GET the OAuth well-known {url} endpoint data"

        try:
            received = json.loads(response.content)
        except ValueError as e:
            raise EndpointCheckError(f"failed to decode well-known {url} JSON: {e}") from e

        mismatch = f"the value returned by the well-known {url} endpoint does not match expectations"
        try:
            document = DiscoveryDocument.model_validate(received)
        except ValidationError as e:
            logger.debug("Well-known document has unexpected shape", url=url, errors=e.error_count())
            return False, mismatch

        if document != expected:
            return False, mismatch
        return True, ""
