import logging
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from combinator import DepthExceeded, Input, Parser, alt, lazy, literal, seq, transform


def _nesting_parser(max_depth=None):
    """'x' is 0, '(x)' is 1, '((x))' is 2 and so on."""
    builds = []

    def build():
        builds.append(1)
        wrapped = transform(seq(literal("("), seq(nested, literal(")"))), lambda v: v[1][0] + 1)
        return alt(wrapped, transform(literal("x"), lambda _: 0))

    nested = lazy(build, name="nested", max_depth=max_depth)
    return nested, builds


def test_lazy_defers_construction():
    nested, builds = _nesting_parser()
    assert builds == []
    assert not nested.is_built

    assert nested("x").value == 0
    assert builds == [1]
    assert nested.is_built


def test_lazy_builds_once_across_recursion_and_reuse():
    nested, builds = _nesting_parser()
    for text, depth in [("((x))", 2), ("x", 0), ("(((((x)))))", 5), ("(x", None)]:
        out = nested(text)
        assert (out.value if out else None) == depth
    assert len(builds) == 1


def test_force_builds_without_parsing():
    nested, builds = _nesting_parser()
    inner = nested.force()
    assert nested.force() is inner
    assert len(builds) == 1


def test_lazy_rejects_non_parsers():
    p = lazy(lambda: "not a parser")
    with pytest.raises(TypeError):
        p("x")


def test_lazy_reentered_during_build():
    holder = {}

    def build():
        holder["p"]("x")
        return literal("x")

    holder["p"] = lazy(build)
    with pytest.raises(RuntimeError):
        holder["p"]("x")


def test_depth_limit():
    nested, _ = _nesting_parser(max_depth=5)
    assert nested("((((x))))").value == 4

    out = nested("(((((x)))))")
    assert out == DepthExceeded(5)
    assert out.fatal

    # the active-depth counter unwinds after a failure
    assert nested("((((x))))").value == 4


def test_depth_limit_disabled():
    nested, _ = _nesting_parser(max_depth=None)
    text = "(" * 120 + "x" + ")" * 120
    assert nested(text).value == 120


@pytest.mark.parametrize("bad", [0, -3, 2.5])
def test_depth_limit_validation(bad):
    with pytest.raises(ValueError):
        lazy(lambda: literal("x"), max_depth=bad)


def test_concurrent_first_use_builds_once():
    builds = []

    def build():
        builds.append(1)
        time.sleep(0.05)
        return literal("a")

    p = lazy(build)
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: p("abc"), range(16)))

    assert len(builds) == 1
    assert all(out.value == "a" and out.rest == "bc" for out in results)


def test_build_is_logged(caplog):
    caplog.set_level(logging.DEBUG, logger="combinator")
    nested, _ = _nesting_parser()
    nested("x")
    nested("x")
    assert [r.getMessage() for r in caplog.records].count("building lazy parser nested") == 1


class _CountingParser(Parser[str]):
    def __init__(self):
        self.calls = 0

    def parse(self, inp):
        self.calls += 1
        return literal("a").parse(inp)


def test_outcomes_are_memoized_within_one_call():
    counting = _CountingParser()
    rule = lazy(lambda: counting, name="rule")
    p = alt(seq(rule, literal("!")), rule)

    out = p("a?")
    assert (out.value, out.rest) == ("a", "?")
    assert counting.calls == 1

    # a fresh call starts with an empty memo table
    p("a?")
    assert counting.calls == 2


def test_direct_parse_is_not_memoized():
    counting = _CountingParser()
    rule = lazy(lambda: counting)
    p = alt(seq(rule, literal("!")), rule)
    p.parse(Input("a?"))
    assert counting.calls == 2


def test_memo_respects_positions():
    counting = _CountingParser()
    rule = lazy(lambda: counting)
    out = seq(rule, rule)("aa")
    assert out.value == ("a", "a")
    assert counting.calls == 2
