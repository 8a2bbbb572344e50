"""
Exception types for the load-test harness.

All signing and payload failures are local validation errors: they are
raised synchronously, surfaced to the load engine through the request
hook's continuation, and never retried.
"""


class HarnessError(Exception):
    """Base class for all harness errors."""


class SigningError(HarnessError, ValueError):
    """Base class for failures while preparing or signing a request."""


class InvalidCredentials(SigningError):
    """Raised when the credential snapshot is missing or incomplete."""


class InvalidSigningContext(SigningError):
    """Raised when region, service, host or the request line is unusable."""


class InvalidTimestamp(SigningError):
    """Raised when the signing instant cannot be turned into a UTC timestamp."""


class InvalidPayloadEncoding(SigningError):
    """Raised when the body does not round-trip through the declared encoding."""


class InvalidRowCount(SigningError):
    """Raised when the requested number of payload rows is not a non-negative integer."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Row count must be a non-negative integer, got {value!r}")


class EndpointSelectionError(HarnessError):
    """Raised when a request cannot be mapped to a known endpoint variant."""


class InvalidScriptMode(HarnessError, ValueError):
    """Raised when a script declares an unknown mode."""


class MergeFileError(HarnessError):
    """Raised when a script's merge file cannot be located or read."""
