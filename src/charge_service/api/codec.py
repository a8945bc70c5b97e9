"""JSON message codec for the charge gRPC service.

The service exchanges UTF-8 JSON documents instead of protobuf messages; these
functions are plugged into gRPC as request/response (de)serializers.
"""

import json
from typing import Any


def encode_message(message: dict[str, Any]) -> bytes:
    return json.dumps(message, separators=(",", ":")).encode("utf-8")


def decode_message(data: bytes) -> dict[str, Any]:
    if not data:
        return {}
    decoded: dict[str, Any] = json.loads(data.decode("utf-8"))
    return decoded
