"""
A printer for SHIK values.

`pformat` produces the external representation used by the REPL
(strings quoted); `display` produces the text used by `print` and by
string interpolation (strings raw).
"""
import math

from shik.shik_datatypes import ShikCallable


def format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


# escapes that let a printed string be read back as a block string
_STRING_ESCAPES = str.maketrans({
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "{": "\\{",
    "}": "\\}",
})


class Printer:
    """Formats SHIK values into their textual forms."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format a value."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def display(self, obj):
        """Like `pformat`, but a top-level string is returned as-is."""
        if isinstance(obj, str):
            return obj
        return self.pformat(obj)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, ShikCallable):
            return self._pformat_function
        if isinstance(obj, dict):
            return self._pformat_object
        if isinstance(obj, list):
            return self._pformat_list
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            int: self._pformat_number,
            float: self._pformat_number,
            bool: self._pformat_bool,
            type(None): self._pformat_null,
            list: self._pformat_list,
            dict: self._pformat_object,
        }

    def _pformat_number(self, obj, level):
        return format_number(obj)

    def _pformat_str(self, obj, level):
        return '"' + obj.translate(_STRING_ESCAPES) + '"'

    def _pformat_bool(self, obj, level):
        return 'true' if obj else 'false'

    def _pformat_null(self, obj, level):
        return 'null'

    def _pformat_function(self, obj, level):
        return 'Lambda function'

    def _pformat_list(self, obj, level):
        if not obj:
            return "[ ]"
        inner = " ".join(self.pformat(item, level + 1) for item in obj)
        return f"[ {inner} ]"

    def _pformat_object(self, obj, level):
        pairs = ", ".join(f"{key}: {self.pformat(value, level + 1)}" for key, value in obj.items())
        return "{" + pairs + "}"
