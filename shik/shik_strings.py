"""
String builtins. The string being operated on is always the last argument.
"""
import pystache

from shik.shik_datatypes import ShikCallable
from shik.shik_runtime import (
    StdLibModule, shik_native, expect_string, expect_list, expect_object, expect_index,
)
from shik.shik_printer import format_number
from shik.shik_serialize import to_builtin


class StringLib(StdLibModule):

    @shik_native("string")
    def _string(self, x):
        match x:
            case bool():
                return "true" if x else "false"
            case int() | float():
                return format_number(x)
            case str():
                return x
            case dict():
                return "[object]"
            case list():
                return "[list]"
            case None:
                return "[null]"
            case ShikCallable():
                return "[lambda]"
        return ""

    @shik_native("string.split")
    def _split(self, sep, s):
        sep, s = expect_string(sep), expect_string(s)
        if sep == "":
            # splitting on the empty separator yields the characters
            return [""] + list(s) + [""]
        return s.split(sep)

    @shik_native("string.concat")
    def _concat(self, a, b): return expect_string(a) + expect_string(b)

    @shik_native("string.trim")
    def _trim(self, s): return expect_string(s).strip()

    @shik_native("string.trim-start")
    def _trim_start(self, s): return expect_string(s).lstrip()

    @shik_native("string.trim-end")
    def _trim_end(self, s): return expect_string(s).rstrip()

    @shik_native("string.upper")
    def _upper(self, s): return expect_string(s).upper()

    @shik_native("string.lower")
    def _lower(self, s): return expect_string(s).lower()

    @shik_native("string.has")
    def _has(self, needle, haystack): return expect_string(needle) in expect_string(haystack)

    @shik_native("string.starts-with")
    def _starts_with(self, prefix, s): return expect_string(s).startswith(expect_string(prefix))

    @shik_native("string.ends-with")
    def _ends_with(self, suffix, s): return expect_string(s).endswith(expect_string(suffix))

    @shik_native("string.replace")
    def _replace(self, old, new, s):
        return expect_string(s).replace(expect_string(old), expect_string(new))

    @shik_native("string.len")
    def _len(self, s): return float(len(expect_string(s)))

    @shik_native("string.at")
    def _at(self, idx, s):
        s = expect_string(s)
        i = expect_index(idx)
        return s[i] if 0 <= i < len(s) else None

    @shik_native("string.slice")
    def _slice(self, start, end, s):
        s = expect_string(s)
        lo = max(0, min(expect_index(start), len(s)))
        hi = max(lo, min(expect_index(end), len(s)))
        return s[lo:hi]

    @shik_native("string.index-of")
    def _index_of(self, needle, haystack):
        return float(expect_string(haystack).find(expect_string(needle)))

    @shik_native("string.join")
    def _join(self, sep, items):
        sep = expect_string(sep)
        return sep.join(self.evaluator.printer.display(item) for item in expect_list(items))

    @shik_native("string.lines")
    def _lines(self, s): return expect_string(s).splitlines()

    @shik_native("string.reverse")
    def _reverse(self, s): return expect_string(s)[::-1]

    @shik_native("string.render")
    def _render(self, template, data):
        """Render a mustache template against an object, without HTML escaping."""
        renderer = pystache.Renderer(escape=lambda u: u)
        return renderer.render(expect_string(template), to_builtin(expect_object(data)))
