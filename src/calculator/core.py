import sys
import logging
import warnings
from enum import Enum
from typing import Optional

from combinator import (
    DEFAULT_MAX_DEPTH,
    DepthExceeded,
    Failure,
    NumericOverflow,
    Outcome,
    Parser,
    alt,
    lazy,
    literal,
    seq,
    token,
    transform,
    unsigned,
)

log = logging.getLogger("calculator")

# stack frames per nested rule: lazy, alt, transform, seq, seq, token, plus slack
_FRAMES_PER_LEVEL = 7


class ParseError(Exception):
    pass


class UnconsumedInputError(ParseError):
    def __init__(self, value: int, remainder: str):
        super().__init__(f"Unconsumed input after {value}: {remainder!r}")
        self.value = value
        self.remainder = remainder


class NumericOverflowError(ParseError):
    pass


class NestingTooDeepError(ParseError):
    pass


# ---------------- evaluation results ----------------
class MatchKind(Enum):
    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"


class Evaluation:
    """What a caller gets back from `Calculator.evaluate`.

    FULL: the whole text was an expression, `value` is its result.
    PARTIAL: a prefix matched; `remainder` is the unconsumed suffix.
    NONE: nothing matched; `failure` says whether that was a plain
          failure, an overflow or too-deep nesting.
    """

    def __init__(
        self,
        kind: MatchKind,
        value: Optional[int] = None,
        remainder: str = "",
        failure: Optional[Failure] = None,
    ):
        self.kind = kind
        self.value = value
        self.remainder = remainder
        self.failure = failure

    @property
    def ok(self) -> bool:
        return self.kind is MatchKind.FULL

    def describe(self) -> str:
        if self.kind is MatchKind.FULL:
            return str(self.value)
        if self.kind is MatchKind.PARTIAL:
            return f"{self.value} (unconsumed input: {self.remainder!r})"
        if isinstance(self.failure, NumericOverflow):
            return "numeric overflow"
        if isinstance(self.failure, DepthExceeded):
            return "expression too long or too deeply nested"
        return "parse error"

    def __repr__(self) -> str:
        return f"Evaluation({self.kind.value}, value={self.value!r}, remainder={self.remainder!r})"


# ---------------- grammar ----------------
class Calculator:
    """Integer arithmetic over `+`, `*` and parentheses.

        expr   = term '+' expr   | term
        term   = factor '*' term | factor
        factor = '(' expr ')'    | natural

    Operator forms come first in each rule; the fallback alone would always
    match the shorter prefix. Both operators recurse on the right, so the
    grammar associates to the right (harmless for `+` and `*`; a `-` or `/`
    would need a decision).

    Each instance owns its own rule graph. `bits` is the unsigned integer
    width for numerals and results; `max_depth` bounds how many rule levels
    may be nested (None for unbounded). Because of the right recursion, every
    `+` in a chain adds an `expr` level and every `*` a `term` level, so long
    flat chains like `1+1+...+1` count toward `max_depth` just like
    parentheses do (each parenthesis pair costs three levels).

    Rule outcomes are memoized per position within one `parse` call, so the
    fallback branches never re-parse an operand and parsing stays linear in
    the input length.
    """

    def __init__(self, bits: int = 32, max_depth: Optional[int] = DEFAULT_MAX_DEPTH):
        if not isinstance(bits, int) or bits < 1:
            raise ValueError(f"bits must be a positive int, got {bits!r}")
        if max_depth is not None and (not isinstance(max_depth, int) or max_depth < 1):
            raise ValueError(f"max_depth must be a positive int or None, got {max_depth!r}")

        recursion_limit = sys.getrecursionlimit()
        if max_depth is None or max_depth * _FRAMES_PER_LEVEL > recursion_limit:
            warnings.warn(
                f"max_depth={max_depth} is not covered by the recursion limit "
                f"({recursion_limit}); deeply nested input may raise RecursionError",
                RuntimeWarning,
                stacklevel=2,
            )

        self.bits = bits
        self.max_depth = max_depth
        self.limit = (1 << bits) - 1
        self.number = unsigned(bits)

        self.expr = lazy(self._expr_rule, name="expr", max_depth=max_depth)
        self.term = lazy(self._term_rule, name="term", max_depth=max_depth)
        self.factor = lazy(self._factor_rule, name="factor", max_depth=max_depth)

    def _checked(self, value: int) -> int:
        if value > self.limit:
            raise OverflowError(f"result {value} exceeds {self.limit}")
        return value

    def _expr_rule(self) -> Parser[int]:
        add = transform(
            seq(token(self.term), seq(token(literal("+")), token(self.expr))),
            lambda v: self._checked(v[0] + v[1][1]),
        )
        return alt(add, token(self.term))

    def _term_rule(self) -> Parser[int]:
        mul = transform(
            seq(token(self.factor), seq(token(literal("*")), token(self.term))),
            lambda v: self._checked(v[0] * v[1][1]),
        )
        return alt(mul, token(self.factor))

    def _factor_rule(self) -> Parser[int]:
        paren = transform(
            seq(token(literal("(")), seq(token(self.expr), token(literal(")")))),
            lambda v: v[1][0],
        )
        return alt(paren, token(self.number))

    # ---------------- entry points ----------------
    def parse(self, text: str) -> Outcome:
        """Run `expr` on `text`; the remainder may be non-empty."""
        return self.expr(text)

    def evaluate(self, text: str) -> Evaluation:
        out = self.parse(text)
        if not out:
            result = Evaluation(MatchKind.NONE, failure=out)
        elif out.rest:
            result = Evaluation(MatchKind.PARTIAL, out.value, out.rest)
        else:
            result = Evaluation(MatchKind.FULL, out.value)
        log.debug("evaluate(%r) -> %r", text, result)
        return result

    def calculate(self, text: str) -> int:
        """Value of `text`, which must be a complete expression."""
        result = self.evaluate(text)
        if result.kind is MatchKind.FULL:
            return result.value
        if result.kind is MatchKind.PARTIAL:
            raise UnconsumedInputError(result.value, result.remainder)
        if isinstance(result.failure, NumericOverflow):
            raise NumericOverflowError(result.failure.message)
        if isinstance(result.failure, DepthExceeded):
            raise NestingTooDeepError(
                f"expression needs more than {result.failure.limit} nested rule levels"
            )
        raise ParseError(f"Not an expression: {text!r}")


_default = Calculator()


def evaluate(text: str) -> Evaluation:
    return _default.evaluate(text)


def calculate(text: str) -> int:
    return _default.calculate(text)
