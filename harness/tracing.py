"""OpenTelemetry tracing for the load-test harness.

Spans are exported over OTLP for the ADOT collector to forward to X-Ray.
The collector endpoint and console export are taken from ``HarnessConfig``
(``OTEL_EXPORTER_OTLP_ENDPOINT`` / ``OTEL_CONSOLE_EXPORT``).

Span attributes describe the target and payload only. Credentials,
signatures and canonical strings are never attached to a span.
"""

from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterator, Optional, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.aws import AwsXRayPropagator
from opentelemetry.sdk.extension.aws.trace import AwsXRayIdGenerator
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

from .config import HarnessConfig, config as default_config

P = ParamSpec("P")
T = TypeVar("T")

SERVICE = "load-test-harness"

_tracer: Optional[trace.Tracer] = None
_initialized = False


def _build_provider(service_name: str, cfg: HarnessConfig) -> TracerProvider:
    resource = Resource.create({
        SERVICE_NAME: service_name,
        "deployment.environment": cfg.environment,
        "cloud.region": cfg.aws_region,
    })
    provider = TracerProvider(resource=resource, id_generator=AwsXRayIdGenerator())

    if cfg.otel_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=cfg.otel_endpoint, insecure=True))
        )
    if cfg.otel_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    return provider


def init_tracing(
    service_name: str = SERVICE,
    cfg: Optional[HarnessConfig] = None,
) -> trace.Tracer:
    """Install the X-Ray aware tracer provider once and return the harness tracer.

    Args:
        service_name: Name reported on every span
        cfg: Configuration to read exporter settings from (defaults to the global config)

    Returns:
        Configured tracer instance
    """
    global _tracer, _initialized

    if _initialized and _tracer is not None:
        return _tracer

    set_global_textmap(AwsXRayPropagator())
    trace.set_tracer_provider(_build_provider(service_name, cfg or default_config))

    _tracer = trace.get_tracer(service_name)
    _initialized = True

    _instrument_httpx()

    return _tracer


def _instrument_httpx() -> None:
    """Trace requests sent through the dispatch helper."""
    try:
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
        HTTPXClientInstrumentor().instrument()
    except ImportError:
        pass  # httpx instrumentation not available


def get_tracer() -> trace.Tracer:
    if _tracer is None:
        return init_tracing()
    return _tracer


def traced(
    name: Optional[str] = None,
    attributes: Optional[dict[str, Any]] = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Run the decorated function inside a span named ``name`` (default: function name).

    Exceptions mark the span as failed and are re-raised unchanged.
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        span_name = name or func.__name__

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with get_tracer().start_as_current_span(
                span_name,
                attributes=attributes,
                record_exception=False,
                set_status_on_exception=False,
            ) as span:
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


@contextmanager
def stage_span(stage: str, **attributes: Any) -> Iterator[trace.Span]:
    """Open a ``monitoring.<stage>`` span around one monitoring stage.

    Exceptions raised inside the block are recorded by the SDK and propagate.
    """
    with get_tracer().start_as_current_span(f"monitoring.{stage}") as span:
        span.set_attribute("monitoring.stage", stage)
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"monitoring.{key}", value)
        yield span


def add_signing_span_attributes(
    span: trace.Span,
    region: Optional[str] = None,
    service: Optional[str] = None,
    host: Optional[str] = None,
    endpoint_variant: Optional[str] = None,
    payload_bytes: Optional[int] = None,
) -> None:
    """Record the signing target and payload size on ``span``."""
    if region:
        span.set_attribute("sigv4.region", region)
    if service:
        span.set_attribute("sigv4.service", service)
    if host:
        span.set_attribute("sigv4.host", host)
    if endpoint_variant:
        span.set_attribute("loadtest.endpoint_variant", endpoint_variant)
    if payload_bytes is not None:
        span.set_attribute("loadtest.payload_bytes", payload_bytes)
