"""
Pytest configuration and fixtures for the harness tests.

Signing fixtures use the example credentials and the 2015-08-30 instant
from the published AWS SigV4 examples, so expected signatures can be
compared against documented values.
"""

import datetime

import pytest

from harness.auth import CredentialSnapshot, RequestDescriptor, SigningContext
from harness.config import HarnessConfig


EXAMPLE_ACCESS_KEY = "AKIDEXAMPLE"
EXAMPLE_SECRET_KEY = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"
EXAMPLE_INSTANT = datetime.datetime(2015, 8, 30, 12, 36, 0, tzinfo=datetime.timezone.utc)


# ============================================================================
# Signing Fixtures
# ============================================================================

@pytest.fixture
def credentials() -> CredentialSnapshot:
    """Long-term example credentials (no session token)."""
    return CredentialSnapshot(
        access_key_id=EXAMPLE_ACCESS_KEY,
        secret_access_key=EXAMPLE_SECRET_KEY,
    )


@pytest.fixture
def session_credentials() -> CredentialSnapshot:
    """Temporary example credentials with a session token."""
    return CredentialSnapshot(
        access_key_id="ASIAEXAMPLE",
        secret_access_key=EXAMPLE_SECRET_KEY,
        session_token="FwoGZXIvYXdzEBYaDK...",
    )


@pytest.fixture
def invocation() -> RequestDescriptor:
    """A SageMaker invocation with a one-row CSV body."""
    return RequestDescriptor(
        method="POST",
        host="runtime.sagemaker.us-west-2.amazonaws.com",
        canonical_uri="/endpoints/neo-optimized-c5/invocations",
        body=b"2,0.675,0.55,0.175,1.689,0.694,0.371,0.474",
    )


@pytest.fixture
def signing_context() -> SigningContext:
    """SageMaker signing context pinned to the example instant."""
    return SigningContext(
        region="us-west-2",
        service="sagemaker",
        timestamp=EXAMPLE_INSTANT,
    )


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def harness_config() -> HarnessConfig:
    """Configuration independent of the process environment."""
    return HarnessConfig(
        aws_region="us-west-2",
        service_name="sagemaker",
        topic_arn="arn:aws:sns:us-west-2:123456789012:load-test-alerts",
    )


@pytest.fixture
def aws_env(monkeypatch):
    """Temporary credentials in the process environment."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "ASIAENVEXAMPLE")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", EXAMPLE_SECRET_KEY)
    monkeypatch.setenv("AWS_SESSION_TOKEN", "env-session-token")
    return monkeypatch
