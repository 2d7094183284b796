"""
JSON and YAML conversion between text and SHIK values.
"""
from __future__ import annotations

import datetime
import json
from typing import Any

import yaml

from shik.shik_datatypes import ShikCallable
from shik.shik_errors import CustomError
from shik.shik_runtime import StdLibModule, shik_native, expect_string


# --------------------------
# Helpers
# --------------------------

def _to_shik(obj: Any) -> Any:
    """Normalize parsed data: every number becomes a float, keys become strings."""
    match obj:
        case bool() | None | str():
            return obj
        case int() | float():
            return float(obj)
        case list() | tuple():
            return [_to_shik(x) for x in obj]
        case dict():
            return {str(k): _to_shik(v) for k, v in obj.items()}
        case datetime.date() | datetime.datetime():
            return obj.isoformat()
    return str(obj)


def to_builtin(obj: Any) -> Any:
    """Prepare a SHIK value for dumping; whole floats are written as integers."""
    match obj:
        case bool() | None | str():
            return obj
        case float() if obj.is_integer():
            return int(obj)
        case int() | float():
            return obj
        case list():
            return [to_builtin(x) for x in obj]
        case dict():
            return {k: to_builtin(v) for k, v in obj.items()}
        case ShikCallable():
            raise CustomError("SerializeError", "functions cannot be serialized")
    raise CustomError("SerializeError", f"cannot serialize {type(obj).__name__}")


def deserialize(text: str, *, fmt: str) -> Any:
    """Parse `text` as 'json' or 'yaml' into SHIK values."""
    try:
        if fmt == 'json':
            return _to_shik(json.loads(text))
        if fmt == 'yaml':
            return _to_shik(yaml.safe_load(text))
    except (json.JSONDecodeError, yaml.YAMLError, OverflowError) as e:
        raise CustomError("ParseError", f"invalid {fmt}: {e}") from None
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = True) -> str:
    built = to_builtin(value)
    if fmt == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if fmt == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


class SerializeLib(StdLibModule):

    @shik_native("json.parse")
    def _json_parse(self, text): return deserialize(expect_string(text), fmt='json')

    @shik_native("json.stringify")
    def _json_stringify(self, value): return serialize(value, fmt='json', pretty=False)

    @shik_native("json.pretty")
    def _json_pretty(self, value): return serialize(value, fmt='json')

    @shik_native("yaml.parse")
    def _yaml_parse(self, text): return deserialize(expect_string(text), fmt='yaml')

    @shik_native("yaml.stringify")
    def _yaml_stringify(self, value): return serialize(value, fmt='yaml')


__all__ = [
    "deserialize",
    "to_builtin",
    "serialize",
    "SerializeLib",
]
