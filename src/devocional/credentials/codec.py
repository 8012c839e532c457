"""JSON encoding for credential values.

Key material is mostly binary, so ``bytes`` values are wrapped as
``{"__bytes__": "<base64>"}`` on the way out and restored on the way in.
"""

import base64
import json
from typing import Any

BYTES_TAG = "__bytes__"


def _encode(value: Any) -> Any:
    if isinstance(value, bytes | bytearray | memoryview):
        return {BYTES_TAG: base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, dict):
        return {str(k): _encode(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_encode(v) for v in value]
    return value


def _decode_hook(obj: dict[str, Any]) -> Any:
    if len(obj) == 1 and BYTES_TAG in obj:
        return base64.b64decode(obj[BYTES_TAG])
    return obj


def dumps(value: Any) -> str:
    """Serialize a credential value to JSON text."""
    return json.dumps(_encode(value), separators=(",", ":"), sort_keys=True)


def loads(text: str | bytes) -> Any:
    """Deserialize JSON text produced by dumps().

    Raises:
        ValueError: If the text is not valid JSON or has a bad bytes payload.
    """
    try:
        return json.loads(text, object_hook=_decode_hook)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid credential payload: {e}") from e
