"""Load-test harness for SageMaker inference endpoints."""

from .auth import (
    CredentialSnapshot,
    RequestDescriptor,
    SigningContext,
    get_credential_snapshot,
    sign,
    snapshot_from_env,
)
from .config import HarnessConfig
from .errors import (
    EndpointSelectionError,
    HarnessError,
    InvalidCredentials,
    InvalidPayloadEncoding,
    InvalidRowCount,
    InvalidScriptMode,
    InvalidSigningContext,
    InvalidTimestamp,
    MergeFileError,
    SigningError,
)
from .handler import create_handler
from .metrics import get_metrics_emitter, init_metrics, MetricsEmitter, HarnessMetricName
from .monitoring import MonitoringPipeline
from .payload import synthesize_body, synthesize_rows
from .processor import make_set_request, prepare_request, set_request

__all__ = [
    # Signing
    "CredentialSnapshot",
    "RequestDescriptor",
    "SigningContext",
    "get_credential_snapshot",
    "sign",
    "snapshot_from_env",
    # Request hook
    "make_set_request",
    "prepare_request",
    "set_request",
    "synthesize_body",
    "synthesize_rows",
    # Orchestration
    "HarnessConfig",
    "MonitoringPipeline",
    "create_handler",
    # Metrics
    "get_metrics_emitter",
    "init_metrics",
    "MetricsEmitter",
    "HarnessMetricName",
    # Errors
    "EndpointSelectionError",
    "HarnessError",
    "InvalidCredentials",
    "InvalidPayloadEncoding",
    "InvalidRowCount",
    "InvalidScriptMode",
    "InvalidSigningContext",
    "InvalidTimestamp",
    "MergeFileError",
    "SigningError",
]
