"""
Endpoint variant selection.

Load-test scripts target one of two SageMaker endpoints: the Neo-optimized
build and the unoptimized baseline. A script picks one either through an
explicit ``targetVariant`` variable or through a placeholder in the request
URL (``.../unoptimizedEndpointName`` or ``.../optimizedEndpointName``).
"""

import re
from enum import Enum
from typing import Any, Mapping, Optional

from .config import HarnessConfig
from .errors import EndpointSelectionError

OPTIMIZED_PLACEHOLDER = "optimizedEndpointName"
UNOPTIMIZED_PLACEHOLDER = "unoptimizedEndpointName"
VARIANT_VARIABLE = "targetVariant"

# SageMaker endpoint names: alphanumerics and hyphens, no leading/trailing hyphen.
_ENDPOINT_NAME = re.compile(r"^[a-zA-Z0-9](-*[a-zA-Z0-9])*$")


class EndpointVariant(str, Enum):
    """Endpoint variants a load test can target."""
    OPTIMIZED = "optimized"
    UNOPTIMIZED = "unoptimized"


def resolve_variant(url: Optional[str], variables: Optional[Mapping[str, Any]] = None) -> EndpointVariant:
    """
    Decide which endpoint variant a request targets.

    An explicit ``targetVariant`` variable wins. Otherwise the URL is
    searched for a placeholder; the unoptimized placeholder is tested first
    because it contains the optimized one.

    Raises:
        EndpointSelectionError: If the variable is unknown or no placeholder matches
    """
    explicit = (variables or {}).get(VARIANT_VARIABLE)
    if explicit:
        try:
            return EndpointVariant(str(explicit).strip().lower())
        except ValueError as e:
            valid = ", ".join(f'"{v.value}"' for v in EndpointVariant)
            raise EndpointSelectionError(
                f"{VARIANT_VARIABLE} must be one of: {valid}; got {explicit!r}"
            ) from e

    url = url or ""
    if UNOPTIMIZED_PLACEHOLDER in url:
        return EndpointVariant.UNOPTIMIZED
    if OPTIMIZED_PLACEHOLDER in url:
        return EndpointVariant.OPTIMIZED

    raise EndpointSelectionError(
        f"Request URL {url!r} names no endpoint variant; use "
        f"{OPTIMIZED_PLACEHOLDER!r}, {UNOPTIMIZED_PLACEHOLDER!r} or set {VARIANT_VARIABLE}"
    )


def endpoint_name(variant: EndpointVariant, cfg: HarnessConfig) -> str:
    """Look up and validate the configured endpoint name for a variant."""
    if variant is EndpointVariant.OPTIMIZED:
        name = cfg.optimized_endpoint
    else:
        name = cfg.unoptimized_endpoint
    if not name or not _ENDPOINT_NAME.match(name):
        raise EndpointSelectionError(f"Invalid endpoint name for {variant.value}: {name!r}")
    return name


def invocation_uri(name: str) -> str:
    """Canonical URI of a SageMaker runtime invocation."""
    return f"/endpoints/{name}/invocations"
