"""JSON serialization utilities for namedsql.

Used for diagnostic log lines and structured log records, so encoding never
fails: values msgspec cannot encode natively fall back to ``repr``.
"""

from typing import Any, Literal, Union, overload

import msgspec

__all__ = ("from_json", "to_json")


def _enc_hook(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return list(value)
    return repr(value)


_encoder = msgspec.json.Encoder(enc_hook=_enc_hook)
_decoder = msgspec.json.Decoder()


@overload
def to_json(data: Any, *, as_bytes: Literal[False] = ...) -> str: ...


@overload
def to_json(data: Any, *, as_bytes: Literal[True]) -> bytes: ...


def to_json(data: Any, *, as_bytes: bool = False) -> Union[str, bytes]:
    """Encode data to JSON string or bytes.

    Args:
        data: Data to encode.
        as_bytes: Whether to return bytes instead of string.

    Returns:
        JSON string or bytes representation based on as_bytes parameter.
    """
    encoded = _encoder.encode(data)
    if as_bytes:
        return encoded
    return encoded.decode("utf-8")


def from_json(data: Union[str, bytes]) -> Any:
    """Decode JSON string or bytes to Python object."""
    return _decoder.decode(data)
