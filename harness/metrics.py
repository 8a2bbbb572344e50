"""
CloudWatch metrics for the load-test harness.

Metrics are written to stdout in the Embedded Metric Format (EMF). The
Lambda log stream is ingested by CloudWatch, which extracts the metrics, so
the request hook never makes a PutMetricData call in the hot path.

Request signing:  SigningCount, SigningSuccess, SigningFailure,
                  SigningLatency, PayloadBytes
Monitoring:       MonitoringRunCount, MonitoringRunFailed, AlertSent, AlertSkipped
Errors:           TaskErrorCount
"""

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from .config import config as default_config

# EMF property values are clipped so one bad message cannot bloat a log line.
MAX_PROPERTY_LENGTH = 200
MAX_DIMENSION_LENGTH = 50


class MetricUnit(str, Enum):
    COUNT = "Count"
    MILLISECONDS = "Milliseconds"
    BYTES = "Bytes"


class HarnessMetricName(str, Enum):
    SIGNING_COUNT = "SigningCount"
    SIGNING_SUCCESS = "SigningSuccess"
    SIGNING_FAILURE = "SigningFailure"
    SIGNING_LATENCY = "SigningLatency"
    PAYLOAD_BYTES = "PayloadBytes"

    MONITORING_RUN_COUNT = "MonitoringRunCount"
    MONITORING_RUN_FAILED = "MonitoringRunFailed"
    ALERT_SENT = "AlertSent"
    ALERT_SKIPPED = "AlertSkipped"

    TASK_ERROR_COUNT = "TaskErrorCount"


MetricValues = Mapping[HarnessMetricName, tuple[float, MetricUnit]]


@dataclass
class MetricDimensions:
    """Dimension set attached to one EMF record. Unset dimensions are omitted."""
    environment: str = field(default_factory=lambda: default_config.environment)
    endpoint_variant: Optional[str] = None
    mode: Optional[str] = None
    error_type: Optional[str] = None

    def to_dict(self) -> dict[str, str]:
        pairs = [
            ("Environment", self.environment),
            ("EndpointVariant", self.endpoint_variant),
            ("Mode", self.mode),
            ("ErrorType", self.error_type),
        ]
        return {name: value[:MAX_DIMENSION_LENGTH] for name, value in pairs if value}


class MetricsEmitter:
    """Writes harness metrics as EMF records on stdout."""

    NAMESPACE = "LoadTestHarness"

    def __init__(self, service_name: str = "load-test-harness"):
        self.service_name = service_name

    def _record(
        self,
        metrics: MetricValues,
        dimensions: MetricDimensions,
        properties: Optional[Mapping[str, Any]],
    ) -> dict[str, Any]:
        dims = dimensions.to_dict()
        record: dict[str, Any] = {
            "_aws": {
                "Timestamp": int(time.time() * 1000),
                "CloudWatchMetrics": [{
                    "Namespace": self.NAMESPACE,
                    "Dimensions": [list(dims)],
                    "Metrics": [{"Name": name.value, "Unit": unit.value} for name, (_, unit) in metrics.items()],
                }],
            },
            "service": self.service_name,
        }
        record.update(dims)
        record.update({name.value: value for name, (value, _) in metrics.items()})
        if properties:
            record.update(properties)
        return record

    def put(
        self,
        metrics: MetricValues,
        dimensions: Optional[MetricDimensions] = None,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Write one EMF record carrying every metric in ``metrics``."""
        record = self._record(metrics, dimensions or MetricDimensions(), properties)
        print(json.dumps(record))

    def emit(
        self,
        metric_name: HarnessMetricName,
        value: float,
        unit: MetricUnit = MetricUnit.COUNT,
        dimensions: Optional[MetricDimensions] = None,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.put({metric_name: (value, unit)}, dimensions, properties)

    def record_signing(
        self,
        success: bool,
        latency_ms: float,
        endpoint_variant: Optional[str] = None,
        payload_bytes: int = 0,
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record one pass through the request hook.

        Args:
            success: Whether the request was signed
            latency_ms: Time spent building and signing the request
            endpoint_variant: Targeted endpoint variant, if resolved
            payload_bytes: Size of the signed body (successes only)
            error_type: Exception class name if signing failed
        """
        metrics = {
            HarnessMetricName.SIGNING_COUNT: (1, MetricUnit.COUNT),
            HarnessMetricName.SIGNING_LATENCY: (latency_ms, MetricUnit.MILLISECONDS),
        }
        if success:
            metrics[HarnessMetricName.SIGNING_SUCCESS] = (1, MetricUnit.COUNT)
            metrics[HarnessMetricName.PAYLOAD_BYTES] = (payload_bytes, MetricUnit.BYTES)
        else:
            metrics[HarnessMetricName.SIGNING_FAILURE] = (1, MetricUnit.COUNT)

        self.put(metrics, MetricDimensions(endpoint_variant=endpoint_variant, error_type=error_type))

    def record_monitoring_run(self, failed: bool, error_message: Optional[str] = None) -> None:
        metrics = {HarnessMetricName.MONITORING_RUN_COUNT: (1, MetricUnit.COUNT)}
        if failed:
            metrics[HarnessMetricName.MONITORING_RUN_FAILED] = (1, MetricUnit.COUNT)

        properties = {"errorMessage": error_message[:MAX_PROPERTY_LENGTH]} if error_message else None
        self.put(metrics, MetricDimensions(mode="monitoring"), properties)

    def record_alert(self, sent: bool) -> None:
        metric = HarnessMetricName.ALERT_SENT if sent else HarnessMetricName.ALERT_SKIPPED
        self.emit(metric, 1, dimensions=MetricDimensions(mode="monitoring"))

    def record_error(self, error_type: str, error_message: str, operation: Optional[str] = None) -> None:
        """Record a failure caught at the Lambda boundary."""
        self.emit(
            HarnessMetricName.TASK_ERROR_COUNT,
            1,
            dimensions=MetricDimensions(error_type=error_type),
            properties={
                "errorType": error_type,
                "errorMessage": error_message[:MAX_PROPERTY_LENGTH],
                "operation": operation,
            },
        )


_metrics_emitter: Optional[MetricsEmitter] = None


def get_metrics_emitter() -> MetricsEmitter:
    global _metrics_emitter
    if _metrics_emitter is None:
        _metrics_emitter = MetricsEmitter()
    return _metrics_emitter


def init_metrics(service_name: str = "load-test-harness") -> MetricsEmitter:
    """Replace the global emitter, e.g. to report under the Lambda function name."""
    global _metrics_emitter
    _metrics_emitter = MetricsEmitter(service_name)
    return _metrics_emitter
