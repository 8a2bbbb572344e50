"""Configuration for the load-test harness."""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


@dataclass
class HarnessConfig:
    """Configuration for the harness Lambda and its request hook."""

    # Signing target
    aws_region: str = "us-west-2"
    service_name: str = "sagemaker"
    endpoint_host: str = ""

    # Payload
    content_type: str = "text/csv"
    payload_encoding: str = "utf-8"
    default_row_count: int = 1

    # Endpoint variants under test
    optimized_endpoint: str = "neo-optimized-c5"
    unoptimized_endpoint: str = "unoptimized-c5"

    # Alerting
    topic_arn: str = ""

    debug: bool = False
    environment: str = "development"

    # OpenTelemetry configuration
    otel_endpoint: str = ""
    otel_console_export: bool = False

    @property
    def host(self) -> str:
        """Runtime host requests are signed for."""
        return self.endpoint_host or f"runtime.{self.service_name}.{self.aws_region}.amazonaws.com"

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Load configuration from environment variables."""
        return cls(
            aws_region=os.getenv("AWS_REGION", cls.aws_region),
            service_name=os.getenv("SIGNING_SERVICE", cls.service_name),
            endpoint_host=os.getenv("ENDPOINT_HOST", ""),
            content_type=os.getenv("PAYLOAD_CONTENT_TYPE", cls.content_type),
            payload_encoding=os.getenv("PAYLOAD_ENCODING", cls.payload_encoding),
            default_row_count=int(os.getenv("DEFAULT_ROW_COUNT", str(cls.default_row_count))),
            optimized_endpoint=os.getenv("OPTIMIZED_ENDPOINT_NAME", cls.optimized_endpoint),
            unoptimized_endpoint=os.getenv("UNOPTIMIZED_ENDPOINT_NAME", cls.unoptimized_endpoint),
            topic_arn=os.getenv("TOPIC_ARN", ""),
            debug=_flag("SA_DEBUG"),
            environment=os.getenv("ENVIRONMENT", cls.environment),
            otel_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
            otel_console_export=_flag("OTEL_CONSOLE_EXPORT"),
        )


# Global config instance
config = HarnessConfig.from_env()
