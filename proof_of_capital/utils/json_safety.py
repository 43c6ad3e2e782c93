import json
from typing import Any

from fastapi.responses import JSONResponse

# Integers beyond 2**53 lose precision in JavaScript clients
JS_SAFE_INT = 2**53 - 1


class SafeJSONResponse(JSONResponse):
    """JSONResponse that emits unsafe-sized integers as decimal strings."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            stringify_big_ints(content),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")


def stringify_big_ints(obj):
    """Recursively replace integers outside the JS safe range with strings."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, int):
        if -JS_SAFE_INT <= obj <= JS_SAFE_INT:
            return obj
        return str(obj)
    if isinstance(obj, dict):
        return {k: stringify_big_ints(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [stringify_big_ints(v) for v in obj]
    return obj
