"""
List and object builtins.

Lists are never modified in place; every operation returns a new list.
Higher-order functions call back into the evaluator through `ctx.apply`.
"""
import math

from shik.shik_runtime import (
    StdLibModule, shik_native, expect_list, expect_number, expect_bool,
    expect_index, expect_object, expect_string,
)


class ListLib(StdLibModule):

    @shik_native("list.len")
    def _len(self, lst): return float(len(expect_list(lst)))

    @shik_native("list.sum")
    def _sum(self, lst): return math.fsum(expect_number(x) for x in expect_list(lst))

    @shik_native("list.head")
    def _head(self, lst):
        lst = expect_list(lst)
        return lst[0] if lst else None

    @shik_native("list.tail")
    def _tail(self, lst): return expect_list(lst)[1:]

    @shik_native("list.last")
    def _last(self, lst):
        lst = expect_list(lst)
        return lst[-1] if lst else None

    @shik_native("list.init")
    def _init(self, lst): return expect_list(lst)[:-1]

    @shik_native("list.reverse")
    def _reverse(self, lst): return expect_list(lst)[::-1]

    @shik_native("list.concat")
    def _concat(self, a, b): return expect_list(a) + expect_list(b)

    @shik_native("list.push")
    def _push(self, item, lst): return expect_list(lst) + [item]

    @shik_native("list.nth")
    def _nth(self, idx, lst):
        lst = expect_list(lst)
        i = expect_index(idx)
        return lst[i] if 0 <= i < len(lst) else None

    @shik_native("list.empty?")
    def _is_empty(self, lst): return not expect_list(lst)

    @shik_native("list.range")
    def _range(self, start, end):
        """Whole numbers from `start` up to, not including, `end`."""
        return [float(i) for i in range(expect_index(start), expect_index(end))]

    @shik_native("list.take")
    def _take(self, n, lst): return expect_list(lst)[:max(0, expect_index(n))]

    @shik_native("list.drop")
    def _drop(self, n, lst): return expect_list(lst)[max(0, expect_index(n)):]

    @shik_native("list.map")
    def _map(self, func, lst, *, ctx):
        return [ctx.apply(func, item) for item in expect_list(lst)]

    @shik_native("list.filter")
    def _filter(self, func, lst, *, ctx):
        return [item for item in expect_list(lst) if expect_bool(ctx.apply(func, item))]

    @shik_native("list.fold")
    def _fold(self, init, func, lst, *, ctx):
        acc = init
        for item in expect_list(lst):
            acc = ctx.apply(func, acc, item)
        return acc

    @shik_native("list.any")
    def _any(self, func, lst, *, ctx):
        return any(expect_bool(ctx.apply(func, item)) for item in expect_list(lst))

    @shik_native("list.all")
    def _all(self, func, lst, *, ctx):
        return all(expect_bool(ctx.apply(func, item)) for item in expect_list(lst))

    @shik_native("list.find")
    def _find(self, func, lst, *, ctx):
        for item in expect_list(lst):
            if expect_bool(ctx.apply(func, item)):
                return item
        return None

    # --- Objects ---

    @shik_native("object.keys")
    def _keys(self, obj): return list(expect_object(obj).keys())

    @shik_native("object.values")
    def _values(self, obj): return list(expect_object(obj).values())

    @shik_native("object.get")
    def _get(self, key, obj): return expect_object(obj).get(expect_string(key))

    @shik_native("object.set")
    def _set(self, key, value, obj):
        return {**expect_object(obj), expect_string(key): value}
