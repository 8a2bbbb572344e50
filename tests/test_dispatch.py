"""Tests for dispatching signed descriptors."""

import httpx
import pytest

from harness.auth import RequestDescriptor, sign
from harness.dispatch import build_url, send, to_httpx_request


class TestToHttpxRequest:
    """Tests for to_httpx_request()."""

    def test_signed_request(self, invocation, credentials, signing_context):
        signed = sign(invocation, credentials, signing_context)

        request = to_httpx_request(signed)

        assert request.method == "POST"
        assert str(request.url) == (
            "https://runtime.sagemaker.us-west-2.amazonaws.com/endpoints/neo-optimized-c5/invocations"
        )
        assert request.headers["host"] == "runtime.sagemaker.us-west-2.amazonaws.com"
        assert request.headers["authorization"] == signed.headers["Authorization"]
        assert request.headers["x-amz-date"] == "20150830T123600Z"
        assert request.content == signed.body

    def test_query_string_appended(self):
        descriptor = RequestDescriptor(
            method="GET",
            host="iam.amazonaws.com",
            canonical_uri="/",
            query_string="Action=ListUsers&Version=2010-05-08",
        )

        assert build_url(descriptor) == "https://iam.amazonaws.com/?Action=ListUsers&Version=2010-05-08"

    def test_unsigned_text_body_rejected(self, invocation):
        invocation.body = "not encoded"

        with pytest.raises(TypeError):
            to_httpx_request(invocation)


class TestSend:
    """Tests for send()."""

    def test_sends_once(self, invocation, credentials, signing_context):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="0.42")

        signed = sign(invocation, credentials, signing_context)
        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            response = send(signed, client=client)

        assert response.status_code == 200
        assert response.text == "0.42"
        assert len(seen) == 1
        assert seen[0].headers["content-type"] == "text/csv"
        assert seen[0].content == invocation.body

    def test_error_status_returned_not_retried(self, invocation, credentials, signing_context):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(403, json={"message": "Signature expired"})

        signed = sign(invocation, credentials, signing_context)
        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            response = send(signed, client=client)

        assert response.status_code == 403
        assert len(calls) == 1
