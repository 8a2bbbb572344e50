"""
Artillery-style pre-request hook that signs SageMaker invocations.

The load engine calls :func:`set_request` once per virtual-user request
with the mutable request parameters, the iteration context and a
continuation. The hook builds the body, signs the request and then calls
the continuation exactly once: with no argument to send the request, or
with the error to abort it. Nothing is ever sent unsigned.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, MutableMapping, Optional

from opentelemetry import trace

from .auth import CredentialSnapshot, RequestDescriptor, SigningContext, sign, snapshot_from_env
from .auth.timestamp import Instant
from .config import HarnessConfig, config as default_config
from .endpoints import EndpointVariant, endpoint_name, invocation_uri, resolve_variant
from .errors import HarnessError, InvalidPayloadEncoding
from .metrics import get_metrics_emitter
from .payload import synthesize_body
from .tracing import add_signing_span_attributes, traced

logger = logging.getLogger(__name__)

METHOD = "POST"
ROW_COUNT_VARIABLE = "numRowsInRequest"

Continuation = Callable[..., Any]


@dataclass
class PreparedRequest:
    """A signed request and the variant it targets."""
    descriptor: RequestDescriptor
    variant: EndpointVariant


def _variables(context: Any) -> Mapping[str, Any]:
    if context is None:
        return {}
    if isinstance(context, Mapping):
        return context.get("vars") or {}
    return getattr(context, "vars", None) or {}


def prepare_request(
    request_params: Mapping[str, Any],
    variables: Mapping[str, Any],
    credentials: CredentialSnapshot,
    cfg: HarnessConfig,
    timestamp: Optional[Instant] = None,
) -> PreparedRequest:
    """
    Build and sign the descriptor for one invocation.

    A body already present on ``request_params`` is signed as-is; otherwise
    one is synthesized from the ``numRowsInRequest`` variable.

    Raises:
        EndpointSelectionError: If no endpoint variant can be resolved
        SigningError: If the payload or signature cannot be produced
    """
    variant = resolve_variant(request_params.get("url"), variables)
    name = endpoint_name(variant, cfg)

    body = request_params.get("body")
    if body is None or body == "" or body == b"":
        rows = variables.get(ROW_COUNT_VARIABLE, cfg.default_row_count)
        body = synthesize_body(rows, encoding=cfg.payload_encoding)
    elif not isinstance(body, (str, bytes, bytearray)):
        raise InvalidPayloadEncoding(f"Unsupported body type: {type(body).__name__}")

    descriptor = RequestDescriptor(
        method=METHOD,
        host=cfg.host,
        canonical_uri=invocation_uri(name),
        body=body,
    )

    context_kwargs: dict[str, Any] = {
        "region": cfg.aws_region,
        "service": cfg.service_name,
        "content_type": cfg.content_type,
        "encoding": cfg.payload_encoding,
    }
    if timestamp is not None:
        context_kwargs["timestamp"] = timestamp

    signed = sign(descriptor, credentials, SigningContext(**context_kwargs))
    return PreparedRequest(descriptor=signed, variant=variant)


def apply_to_request(request_params: MutableMapping[str, Any], prepared: PreparedRequest) -> None:
    """Write the signed headers, body and resolved URL back onto the engine's request."""
    descriptor = prepared.descriptor
    request_params["url"] = f"https://{descriptor.host}{descriptor.canonical_uri}"
    request_params["headers"] = dict(descriptor.headers)
    request_params["body"] = descriptor.body


def make_set_request(
    cfg: Optional[HarnessConfig] = None,
    credential_source: Callable[[], CredentialSnapshot] = snapshot_from_env,
) -> Callable[..., Any]:
    """
    Create a pre-request hook bound to a configuration and credential source.

    The credential source is called once per request so rotated Lambda
    credentials are picked up as a whole.
    """

    @traced("loadtest.set_request")
    def set_request(
        request_params: MutableMapping[str, Any],
        context: Any,
        events: Any,
        next_: Continuation,
    ) -> Any:
        settings = cfg or default_config
        metrics = get_metrics_emitter()
        started = time.perf_counter()

        try:
            prepared = prepare_request(
                request_params,
                _variables(context),
                credential_source(),
                settings,
            )
        except HarnessError as e:
            latency_ms = (time.perf_counter() - started) * 1000
            logger.warning("Aborting request: %s: %s", type(e).__name__, e)
            metrics.record_signing(
                success=False,
                latency_ms=latency_ms,
                error_type=type(e).__name__,
            )
            return next_(e)

        apply_to_request(request_params, prepared)

        latency_ms = (time.perf_counter() - started) * 1000
        payload_bytes = len(prepared.descriptor.body or b"")
        add_signing_span_attributes(
            trace.get_current_span(),
            region=settings.aws_region,
            service=settings.service_name,
            host=prepared.descriptor.host,
            endpoint_variant=prepared.variant.value,
            payload_bytes=payload_bytes,
        )
        metrics.record_signing(
            success=True,
            latency_ms=latency_ms,
            endpoint_variant=prepared.variant.value,
            payload_bytes=payload_bytes,
        )
        return next_()

    return set_request


set_request = make_set_request()
