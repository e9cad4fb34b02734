"""Inline source map encoding."""

import base64
import json
from typing import Any

SOURCE_MAP_PREFIX = "# sourceMappingURL=data:application/json;base64,"


def inline_source_map(code: str, source_map: dict[str, Any]) -> str:
    """Append the map to the code as a base64 data URL comment."""
    payload = base64.b64encode(json.dumps(source_map).encode("utf-8")).decode("ascii")
    return f"{code}\n{SOURCE_MAP_PREFIX}{payload}\n"


def extract_source_map(code: str) -> dict[str, Any] | None:
    """Decode the last inline source map comment, if any."""
    index = code.rfind(SOURCE_MAP_PREFIX)
    if index < 0:
        return None
    payload = code[index + len(SOURCE_MAP_PREFIX) :].strip()
    return json.loads(base64.b64decode(payload))
