"""Synthetic CSV payloads for inference requests."""

from typing import Union

from .errors import InvalidPayloadEncoding, InvalidRowCount

# One abalone-style feature record, as served to the benchmark endpoints.
DEFAULT_ROW = "2,0.675,0.55,0.175,1.689,0.694,0.371,0.474"
ROW_SEPARATOR = "\n"


def parse_row_count(value: Union[int, str]) -> int:
    """
    Validate a row count taken from a script variable.

    Artillery variables loaded from CSV payload files arrive as strings, so
    integer strings are accepted alongside ints.

    Raises:
        InvalidRowCount: If the value is negative, boolean, fractional or non-numeric
    """
    if isinstance(value, bool):
        raise InvalidRowCount(value)
    if isinstance(value, int):
        count = value
    elif isinstance(value, str):
        try:
            count = int(value.strip())
        except ValueError as e:
            raise InvalidRowCount(value) from e
    else:
        raise InvalidRowCount(value)
    if count < 0:
        raise InvalidRowCount(value)
    return count


def synthesize_rows(n: Union[int, str], row: str = DEFAULT_ROW) -> str:
    """Return ``n`` copies of ``row`` joined by newlines, without a trailing newline."""
    count = parse_row_count(n)
    return ROW_SEPARATOR.join([row] * count)


def synthesize_body(n: Union[int, str], encoding: str = "utf-8", row: str = DEFAULT_ROW) -> bytes:
    """
    Build the request body for ``n`` rows, encoded for transmission.

    The same ``encoding`` must be declared on the signing context so the
    payload hash covers the bytes actually sent.
    """
    text = synthesize_rows(n, row)
    try:
        return text.encode(encoding)
    except (UnicodeEncodeError, LookupError) as e:
        raise InvalidPayloadEncoding(f"Payload cannot be encoded as {encoding}: {e}") from e
