"""
Send a signed request descriptor over HTTPS.

The load engine normally transmits signed requests itself; this helper is
for one-off invocations such as smoke-testing an endpoint before a run.
Each call sends exactly one request and does not retry.
"""

import logging
from typing import Optional

import httpx

from .auth import RequestDescriptor

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def build_url(descriptor: RequestDescriptor, scheme: str = "https") -> str:
    url = f"{scheme}://{descriptor.host}{descriptor.canonical_uri}"
    if descriptor.query_string:
        url = f"{url}?{descriptor.query_string}"
    return url


def to_httpx_request(descriptor: RequestDescriptor, scheme: str = "https") -> httpx.Request:
    """Build an httpx request carrying the signed headers and the exact signed body."""
    body = descriptor.body
    if isinstance(body, str):
        raise TypeError("Descriptor body must be bytes; sign the descriptor before dispatching")
    return httpx.Request(
        descriptor.method,
        build_url(descriptor, scheme),
        headers=descriptor.headers,
        content=body or b"",
    )


def send(
    descriptor: RequestDescriptor,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> httpx.Response:
    """
    Dispatch a signed descriptor.

    Args:
        descriptor: Descriptor returned by ``sign``
        client: Optional client to reuse; a short-lived one is created otherwise
        timeout: Request timeout in seconds when creating a client

    Returns:
        The HTTP response; status codes are not interpreted here
    """
    request = to_httpx_request(descriptor)
    if client is not None:
        response = client.send(request)
    else:
        with httpx.Client(timeout=timeout) as owned:
            response = owned.send(request)
    logger.info("%s %s -> %s", descriptor.method, request.url, response.status_code)
    return response
