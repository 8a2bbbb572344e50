"""
Authentication utilities for the load-test harness.

This module provides IAM SigV4 signing for synthetic inference requests.
"""

from .sigv4 import (
    CredentialSnapshot,
    RequestDescriptor,
    SignatureMaterial,
    SigningContext,
    compute_signature_material,
    derive_signing_key,
    get_credential_snapshot,
    sign,
    snapshot_from_env,
)
from .timestamp import format_timestamp, utc_now

__all__ = [
    "CredentialSnapshot",
    "RequestDescriptor",
    "SignatureMaterial",
    "SigningContext",
    "compute_signature_material",
    "derive_signing_key",
    "format_timestamp",
    "get_credential_snapshot",
    "sign",
    "snapshot_from_env",
    "utc_now",
]
