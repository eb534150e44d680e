"""Trusted HTTPS transport used to reach the API server backends."""

import ssl
from typing import Optional

import httpx

from .errors import EndpointCheckError
from .logging_config import get_logger

logger = get_logger(__name__)


def read_ca_bundle(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise EndpointCheckError(f"failed to read CA bundle {path}: {e}") from e


def transport_for(ca_data: Optional[bytes] = None, timeout: float = 10.0) -> httpx.AsyncClient:
    """Build an HTTPS client trusting only ``ca_data``, or the system roots when empty.

    Redirects are not followed and proxies from the environment are ignored,
    requests go straight to the address in the URL.
    """
    try:
        if ca_data:
            context = ssl.create_default_context(cadata=ca_data.decode("ascii"))
        else:
            context = ssl.create_default_context()
    except (ssl.SSLError, ValueError) as e:
        raise EndpointCheckError(f"failed to build transport for CA bundle: {e}") from e

    logger.debug("Built API server transport", custom_ca=bool(ca_data), timeout=timeout)
    return httpx.AsyncClient(verify=context, timeout=timeout, follow_redirects=False, trust_env=False)
