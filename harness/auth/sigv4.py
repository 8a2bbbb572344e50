"""
AWS SigV4 signing for synthetic inference requests.

This module signs the requests a load test sends to a SageMaker runtime
endpoint using IAM Signature Version 4 (SigV4). Signing is a pure
computation: credentials, region and the signing instant are captured by
the caller and passed in, so concurrent virtual users never share state.

Usage:
    from harness.auth import (
        CredentialSnapshot, RequestDescriptor, SigningContext, sign, snapshot_from_env,
    )

    descriptor = RequestDescriptor(
        method="POST",
        host="runtime.sagemaker.us-west-2.amazonaws.com",
        canonical_uri="/endpoints/my-endpoint/invocations",
        body=b"2,0.675,0.55,0.175,1.689,0.694,0.371,0.474",
    )
    context = SigningContext(region="us-west-2", service="sagemaker")
    signed = sign(descriptor, snapshot_from_env(), context)
    signed.headers["Authorization"]
"""

import dataclasses
import hashlib
import hmac
import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

import boto3

from ..errors import InvalidCredentials, InvalidPayloadEncoding, InvalidSigningContext
from .timestamp import Instant, format_timestamp, utc_now

logger = logging.getLogger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"
TERMINATOR = "aws4_request"
DEFAULT_CONTENT_TYPE = "text/csv"
DEFAULT_ENCODING = "utf-8"


@dataclass(frozen=True)
class CredentialSnapshot:
    """AWS credentials captured from a single issuance event."""
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: Optional[str] = field(default=None, repr=False)

    @property
    def has_session_token(self) -> bool:
        return bool(self.session_token)


@dataclass
class RequestDescriptor:
    """An outbound request as the load engine will transmit it."""
    method: str
    host: str
    canonical_uri: str
    query_string: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: Optional[Union[bytes, str]] = None


@dataclass(frozen=True)
class SigningContext:
    """
    Target and instant for one signing operation.

    When ``timestamp`` is omitted, the instant is captured once here and
    every derived string comes from it.
    """
    region: str
    service: str
    timestamp: Instant = field(default_factory=utc_now)
    content_type: str = DEFAULT_CONTENT_TYPE
    encoding: Optional[str] = DEFAULT_ENCODING


@dataclass(frozen=True)
class SignatureMaterial:
    """Intermediate values of one signature. Never persist or log these."""
    amz_date: str
    date_stamp: str
    credential_scope: str
    signed_headers: str
    payload_hash: str
    canonical_request: str
    string_to_sign: str
    signature: str
    signing_key: bytes = field(repr=False)


def snapshot_from_env(environ: Optional[Mapping[str, str]] = None) -> CredentialSnapshot:
    """
    Capture credentials from the process environment in one read.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        CredentialSnapshot built from AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY
        and the optional AWS_SESSION_TOKEN

    Raises:
        InvalidCredentials: If the key id or secret is missing
    """
    env = dict(os.environ if environ is None else environ)
    snapshot = CredentialSnapshot(
        access_key_id=env.get("AWS_ACCESS_KEY_ID", ""),
        secret_access_key=env.get("AWS_SECRET_ACCESS_KEY", ""),
        session_token=env.get("AWS_SESSION_TOKEN") or None,
    )
    validate_credentials(snapshot)
    return snapshot


def get_credential_snapshot(profile_name: Optional[str] = None) -> CredentialSnapshot:
    """
    Resolve credentials through the boto3 provider chain.

    Frozen credentials are used so the key, secret and token come from the
    same refresh even when the underlying credentials rotate.

    Args:
        profile_name: Optional AWS profile name to use

    Returns:
        CredentialSnapshot with access key, secret key, and optional session token

    Raises:
        InvalidCredentials: If credentials cannot be obtained
    """
    if profile_name:
        session = boto3.Session(profile_name=profile_name)
    else:
        session = boto3.Session()

    credentials = session.get_credentials()
    if credentials is None:
        raise InvalidCredentials("No AWS credentials found")

    frozen = credentials.get_frozen_credentials()
    snapshot = CredentialSnapshot(
        access_key_id=frozen.access_key,
        secret_access_key=frozen.secret_key,
        session_token=frozen.token or None,
    )
    validate_credentials(snapshot)
    return snapshot


def validate_credentials(credentials: CredentialSnapshot) -> None:
    if not isinstance(credentials, CredentialSnapshot):
        raise InvalidCredentials("Credentials must be a CredentialSnapshot")
    if not credentials.access_key_id or not credentials.access_key_id.strip():
        raise InvalidCredentials("Access key id is empty")
    if not credentials.secret_access_key:
        raise InvalidCredentials("Secret access key is empty")


def canonical_header_value(value: str) -> str:
    """Trim a header value and collapse inner whitespace runs to one space."""
    return " ".join(value.split())


def _check_header_value(name: str, value: str) -> None:
    if "\n" in value or "\r" in value:
        raise InvalidSigningContext(f"Header {name} contains a line break")


def _check_scope_part(name: str, value: str) -> None:
    if not value or not value.strip():
        raise InvalidSigningContext(f"Signing {name} is empty")
    if value != value.lower() or "/" in value or any(c.isspace() for c in value):
        raise InvalidSigningContext(f"Signing {name} must be a lowercase identifier: {value!r}")


def validate_request(descriptor: RequestDescriptor, context: SigningContext) -> None:
    """Check the request line and target before any hashing happens."""
    method = descriptor.method or ""
    if not method or not method.isalpha() or not method.isupper():
        raise InvalidSigningContext(f"Invalid HTTP method: {descriptor.method!r}")
    if not descriptor.host or not descriptor.host.strip():
        raise InvalidSigningContext("Request host is empty")
    _check_header_value("host", descriptor.host)
    if not descriptor.canonical_uri or not descriptor.canonical_uri.startswith("/"):
        raise InvalidSigningContext(
            f"Canonical URI must be an absolute path: {descriptor.canonical_uri!r}"
        )
    _check_scope_part("region", context.region)
    _check_scope_part("service", context.service)
    if not context.content_type or not context.content_type.strip():
        raise InvalidSigningContext("Content type is empty")
    _check_header_value("content-type", context.content_type)


def encode_payload(body: Optional[Union[bytes, str]], encoding: Optional[str]) -> bytes:
    """
    Produce the exact bytes that will be hashed and transmitted.

    Text bodies are encoded with ``encoding``. Byte bodies are checked to
    decode with it, so the hash and the declared encoding agree. An
    ``encoding`` of None marks the body as opaque binary.

    Raises:
        InvalidPayloadEncoding: If the body does not fit the declared encoding
    """
    if body is None:
        return b""
    if isinstance(body, str):
        if encoding is None:
            raise InvalidPayloadEncoding("Text body requires an explicit encoding")
        try:
            return body.encode(encoding)
        except (UnicodeEncodeError, LookupError) as e:
            raise InvalidPayloadEncoding(f"Body cannot be encoded as {encoding}: {e}") from e
    if isinstance(body, (bytes, bytearray)):
        payload = bytes(body)
        if encoding is not None:
            try:
                payload.decode(encoding)
            except (UnicodeDecodeError, LookupError) as e:
                raise InvalidPayloadEncoding(f"Body is not valid {encoding}: {e}") from e
        return payload
    raise InvalidPayloadEncoding(f"Unsupported body type: {type(body).__name__}")


def hash_payload(payload: bytes) -> str:
    """Create SHA256 hash of the payload."""
    return hashlib.sha256(payload).hexdigest()


def _sign(key: bytes, msg: str) -> bytes:
    """Create HMAC-SHA256 signature."""
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_access_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """
    Derive the signing key for SigV4.

    Each stage is keyed by the previous stage's raw digest.

    Args:
        secret_access_key: AWS secret access key
        date_stamp: Date in YYYYMMDD format
        region: AWS region
        service: AWS service name

    Returns:
        Derived signing key
    """
    k_date = _sign(f"AWS4{secret_access_key}".encode("utf-8"), date_stamp)
    k_region = _sign(k_date, region)
    k_service = _sign(k_region, service)
    k_signing = _sign(k_service, TERMINATOR)
    return k_signing


def build_credential_scope(date_stamp: str, region: str, service: str) -> str:
    return f"{date_stamp}/{region}/{service}/{TERMINATOR}"


def build_canonical_request(
    method: str,
    canonical_uri: str,
    query_string: str,
    canonical_headers: str,
    signed_headers: str,
    payload_hash: str,
) -> str:
    """
    Create the canonical request string for SigV4.

    ``canonical_headers`` already ends in a newline, so the blank line the
    protocol requires before the signed header list falls out of the join.
    """
    return "\n".join([
        method,
        canonical_uri,
        query_string,
        canonical_headers,
        signed_headers,
        payload_hash,
    ])


def build_string_to_sign(amz_date: str, credential_scope: str, canonical_request: str) -> str:
    """Create the string to sign for SigV4."""
    return "\n".join([
        ALGORITHM,
        amz_date,
        credential_scope,
        hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
    ])


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def _signed_header_pairs(
    descriptor: RequestDescriptor,
    credentials: CredentialSnapshot,
    context: SigningContext,
    amz_date: str,
) -> list[tuple[str, str]]:
    # Order is fixed and already sorted by name.
    pairs = [
        ("content-type", canonical_header_value(context.content_type)),
        ("host", canonical_header_value(descriptor.host)),
        ("x-amz-date", amz_date),
    ]
    if credentials.has_session_token:
        _check_header_value("x-amz-security-token", credentials.session_token)
        pairs.append(("x-amz-security-token", canonical_header_value(credentials.session_token)))
    return pairs


def compute_signature_material(
    descriptor: RequestDescriptor,
    credentials: CredentialSnapshot,
    context: SigningContext,
) -> SignatureMaterial:
    """
    Run the SigV4 algorithm and return every intermediate value.

    Raises:
        InvalidCredentials: If the key id or secret is empty
        InvalidSigningContext: If method, URI, host, region or service is unusable
        InvalidTimestamp: If the context instant cannot be formatted
        InvalidPayloadEncoding: If the body does not fit the declared encoding
    """
    validate_credentials(credentials)
    validate_request(descriptor, context)

    amz_date, date_stamp = format_timestamp(context.timestamp)

    pairs = _signed_header_pairs(descriptor, credentials, context, amz_date)
    canonical_headers = "".join(f"{name}:{value}\n" for name, value in pairs)
    signed_headers = ";".join(name for name, _ in pairs)

    payload_hash = hash_payload(encode_payload(descriptor.body, context.encoding))

    canonical_request = build_canonical_request(
        method=descriptor.method,
        canonical_uri=descriptor.canonical_uri,
        query_string=descriptor.query_string or "",
        canonical_headers=canonical_headers,
        signed_headers=signed_headers,
        payload_hash=payload_hash,
    )

    credential_scope = build_credential_scope(date_stamp, context.region, context.service)
    string_to_sign = build_string_to_sign(amz_date, credential_scope, canonical_request)

    signing_key = derive_signing_key(
        credentials.secret_access_key, date_stamp, context.region, context.service
    )

    return SignatureMaterial(
        amz_date=amz_date,
        date_stamp=date_stamp,
        credential_scope=credential_scope,
        signed_headers=signed_headers,
        payload_hash=payload_hash,
        canonical_request=canonical_request,
        string_to_sign=string_to_sign,
        signature=compute_signature(signing_key, string_to_sign),
        signing_key=signing_key,
    )


def build_authorization_header(access_key_id: str, material: SignatureMaterial) -> str:
    return (
        f"{ALGORITHM} "
        f"Credential={access_key_id}/{material.credential_scope}, "
        f"SignedHeaders={material.signed_headers}, "
        f"Signature={material.signature}"
    )


def sign(
    descriptor: RequestDescriptor,
    credentials: CredentialSnapshot,
    context: SigningContext,
) -> RequestDescriptor:
    """
    Sign a request using AWS SigV4.

    The input descriptor is left untouched. The returned copy carries the
    encoded body and exactly the headers the signature covers, besides
    ``Host``, which the transport derives from ``descriptor.host``.

    Args:
        descriptor: Request to sign
        credentials: Credential snapshot for this request
        context: Region, service, instant and content type

    Returns:
        New RequestDescriptor with Content-Type, X-Amz-Date, Authorization and,
        for temporary credentials, X-Amz-Security-Token set
    """
    material = compute_signature_material(descriptor, credentials, context)

    headers = {
        "Content-Type": canonical_header_value(context.content_type),
        "X-Amz-Date": material.amz_date,
        "Authorization": build_authorization_header(credentials.access_key_id, material),
    }
    if credentials.has_session_token:
        headers["X-Amz-Security-Token"] = canonical_header_value(credentials.session_token)

    logger.debug(
        "Signed %s %s%s for %s/%s (signed headers: %s)",
        descriptor.method,
        descriptor.host,
        descriptor.canonical_uri,
        context.region,
        context.service,
        material.signed_headers,
    )

    return dataclasses.replace(
        descriptor,
        headers=headers,
        body=encode_payload(descriptor.body, context.encoding),
    )
