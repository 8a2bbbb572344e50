#!/usr/bin/env python3
"""
Send one signed invocation to a SageMaker endpoint.

Use this to check an endpoint and the signing configuration before
starting a load test.

Usage:
    python scripts/invoke_endpoint.py --variant optimized --rows 3
    python scripts/invoke_endpoint.py --endpoint my-endpoint --region us-east-1
    python scripts/invoke_endpoint.py --variant unoptimized --profile load-test --dry-run

Authentication:
    Credentials are resolved through the boto3 provider chain (environment,
    credentials file, instance role) or the --profile option.

    Required IAM permissions:
    - sagemaker:InvokeEndpoint
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from harness.auth import RequestDescriptor, SigningContext, get_credential_snapshot, sign
from harness.config import HarnessConfig
from harness.dispatch import send
from harness.endpoints import EndpointVariant, endpoint_name, invocation_uri
from harness.errors import HarnessError
from harness.payload import synthesize_body


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Send one SigV4-signed invocation to a SageMaker endpoint",
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--variant",
        choices=[v.value for v in EndpointVariant],
        default=EndpointVariant.OPTIMIZED.value,
        help="Configured endpoint variant to call",
    )
    target.add_argument("--endpoint", help="Explicit endpoint name (overrides --variant)")
    parser.add_argument("--rows", type=int, default=1, help="Rows in the synthesized payload")
    parser.add_argument("--region", help="AWS region (defaults to AWS_REGION)")
    parser.add_argument("--profile", help="AWS profile name")
    parser.add_argument("--timeout", type=float, default=30.0, help="Request timeout in seconds")
    parser.add_argument("--dry-run", action="store_true", help="Sign but do not send")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    cfg = HarnessConfig.from_env()
    if args.region:
        cfg = dataclasses.replace(cfg, aws_region=args.region)

    try:
        name = args.endpoint or endpoint_name(EndpointVariant(args.variant), cfg)
        descriptor = RequestDescriptor(
            method="POST",
            host=cfg.host,
            canonical_uri=invocation_uri(name),
            body=synthesize_body(args.rows, encoding=cfg.payload_encoding),
        )
        context = SigningContext(
            region=cfg.aws_region,
            service=cfg.service_name,
            content_type=cfg.content_type,
            encoding=cfg.payload_encoding,
        )
        signed = sign(descriptor, get_credential_snapshot(args.profile), context)
    except HarnessError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"POST https://{signed.host}{signed.canonical_uri} ({len(signed.body)} bytes)")
    if args.dry_run:
        print(f"X-Amz-Date: {signed.headers['X-Amz-Date']}")
        print("Signed; not sent (--dry-run)")
        return 0

    response = send(signed, timeout=args.timeout)
    print(f"Status: {response.status_code}")
    print(response.text)
    return 0 if response.is_success else 1


if __name__ == "__main__":
    sys.exit(main())
