"""
Wire codecs for WebSocket frames.

Binary frames carry MessagePack, text frames carry JSON. Each connection picks
the encoding it wants for outbound messages; inbound frames are decoded by
frame kind, so a client may send either.
"""

import json
from enum import StrEnum
from typing import Any

import msgpack


class WireEncoding(StrEnum):
    MSGPACK = "msgpack"
    JSON = "json"


class DecodeError(Exception):
    """Error raised when an inbound frame cannot be decoded into a message."""


# Size limits to prevent resource exhaustion from malicious payloads.
MAX_BUFFER_LEN = 64 * 1024  # 64KB total payload
MAX_STR_LEN = 16 * 1024  # 16KB per string
MAX_BIN_LEN = 16 * 1024
MAX_ARRAY_LEN = 256
MAX_MAP_LEN = 64
MAX_EXT_LEN = 1024


def encode(data: dict[str, Any], encoding: WireEncoding = WireEncoding.MSGPACK) -> bytes | str:
    """
    Encode a message dict for the given wire encoding.

    MessagePack produces bytes (binary frame), JSON produces str (text frame).
    """
    if encoding is WireEncoding.JSON:
        return json.dumps(data, separators=(",", ":"))
    return msgpack.packb(data)


def decode(frame: bytes | str) -> dict[str, Any]:
    """
    Decode an inbound frame to a dict.

    Raises DecodeError if the frame is invalid, not a dict, or exceeds size limits.
    """
    size = len(frame.encode("utf-8", "surrogatepass")) if isinstance(frame, str) else len(frame)
    if size > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {size} bytes (max {MAX_BUFFER_LEN})")

    if isinstance(frame, str):
        result = _decode_json(frame)
    else:
        result = _decode_msgpack(frame)

    if not isinstance(result, dict):
        raise DecodeError(f"expected dict, got {type(result).__name__}")

    return result


def _decode_json(frame: str) -> object:
    try:
        return json.loads(frame)
    except (json.JSONDecodeError, RecursionError) as e:
        raise DecodeError(f"failed to decode JSON data: {e}") from e


def _decode_msgpack(frame: bytes) -> object:
    try:
        return msgpack.unpackb(
            frame,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e
