import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Callable, List, Tuple, Generic, TypeVar, Union

log = logging.getLogger("combinator")

# per-character tracing; flip on when debugging a grammar
debug = False

T = TypeVar("T")
U = TypeVar("U")

DEFAULT_MAX_DEPTH = 100
U32_MAX = (1 << 32) - 1

# per-thread parse state: active lazy depth and the memo table of the
# parse currently running on this thread
_active = threading.local()


# ---------------- input ----------------
@dataclass(frozen=True)
class Input:
    """Immutable view over `text`, starting at `pos`.

    Parsers never slice the text; they return a new view with a larger `pos`.
    """

    text: str
    pos: int = 0

    @property
    def rest(self) -> str:
        return self.text[self.pos :]

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> Optional[str]:
        if self.at_end():
            return None
        return self.text[self.pos]

    def advance(self, n: int = 1) -> "Input":
        return Input(self.text, min(self.pos + n, len(self.text)))

    def __len__(self) -> int:
        return max(len(self.text) - self.pos, 0)

    def __str__(self) -> str:
        return self.rest


# ---------------- outcomes ----------------
class Outcome(ABC):
    ok = False
    fatal = False

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class Success(Outcome, Generic[T]):
    value: T
    remaining: Input
    ok = True

    @property
    def rest(self) -> str:
        return self.remaining.rest


@dataclass(frozen=True)
class Failure(Outcome):
    """Plain parse failure. Carries nothing; `alt` recovers from it."""


@dataclass(frozen=True)
class NumericOverflow(Failure):
    """A numeral or arithmetic result left the target integer range."""

    message: str = ""
    fatal = True


@dataclass(frozen=True)
class DepthExceeded(Failure):
    """Recursive rules were nested deeper than a lazy parser allows."""

    limit: int = 0
    fatal = True


FAILURE = Failure()


# ---------------- parser base ----------------
class Parser(ABC, Generic[T]):
    """Anything that maps an `Input` to an `Outcome`.

    Combinators return new parsers and never mutate their operands, so a
    parser can be shared freely between grammars.
    """

    name: Optional[str] = None

    @abstractmethod
    def parse(self, inp: Input) -> Outcome:
        ...

    def __call__(self, inp: Union[str, Input]) -> Outcome:
        """Parse `inp`, memoizing lazy rule outcomes for the duration of the call.

        Nested calls on the same thread reuse the outer call's memo table.
        Calling `parse` directly skips memoization.
        """
        if isinstance(inp, str):
            inp = Input(inp)
        if getattr(_active, "memos", None) is not None:
            return self.parse(inp)
        _active.memos = {}
        _active.memo_text = inp.text
        try:
            return self.parse(inp)
        finally:
            _active.memos = None
            _active.memo_text = None

    def named(self, name: str) -> "Parser[T]":
        """A parser that behaves like this one but reprs as `name`.

        The original is left untouched, so renaming a shared parser such as
        `digit` does not leak into other grammars.
        """
        return _Named(self, name)

    def map(self, func: Callable[[T], U]) -> "Parser[U]":
        return transform(self, func)

    # p1 + p2
    def __add__(self, other: "Parser[U]") -> "Parser[Tuple[T, U]]":
        return seq(self, other)

    # p1 | p2
    def __or__(self, other: "Parser[T]") -> "Parser[T]":
        return alt(self, other)

    # p >> f
    def __rshift__(self, func: Callable[[T], U]) -> "Parser[U]":
        return transform(self, func)

    def __repr__(self) -> str:
        return self.name or self.__class__.__name__.lstrip("_")


class _Named(Parser[T]):
    def __init__(self, parser: Parser[T], name: str):
        self.parser = parser
        self.name = name

    def parse(self, inp: Input) -> Outcome:
        return self.parser.parse(inp)


# ---------------- primitives ----------------
class _Item(Parser[str]):
    def parse(self, inp: Input) -> Outcome:
        if inp.at_end():
            return FAILURE
        return Success(inp.text[inp.pos], inp.advance(1))


item = _Item().named("item")


class _Satisfy(Parser[str]):
    def __init__(self, predicate: Callable[[str], bool], name: Optional[str] = None):
        self.predicate = predicate
        self.name = name

    def parse(self, inp: Input) -> Outcome:
        out = item.parse(inp)
        if out and self.predicate(out.value):
            if debug:
                log.debug("matched %r at %d (%s)", out.value, inp.pos, self)
            return out
        return FAILURE


def satisfy(predicate: Callable[[str], bool], name: Optional[str] = None) -> Parser[str]:
    """One character for which `predicate` holds."""
    return _Satisfy(predicate, name)


def literal(c: str) -> Parser[str]:
    if len(c) != 1:
        raise ValueError(f"literal() expects a single character, got {c!r}")
    return satisfy(lambda x: x == c, name=repr(c))


def _is_ascii_digit(c: str) -> bool:
    return "0" <= c <= "9"


digit = satisfy(_is_ascii_digit, name="digit")


# ---------------- repetition ----------------
class _Many(Parser[List[T]]):
    def __init__(self, parser: Parser[T]):
        self.parser = parser

    def parse(self, inp: Input) -> Outcome:
        values = []
        while True:
            out = self.parser.parse(inp)
            if not out:
                if out.fatal:
                    return out
                break
            values.append(out.value)
            inp = out.remaining
        return Success(values, inp)

    def __repr__(self) -> str:
        return self.name or f"many({self.parser!r})"


class _Some(_Many[T]):
    def parse(self, inp: Input) -> Outcome:
        out = super().parse(inp)
        if out and not out.value:
            return FAILURE
        return out

    def __repr__(self) -> str:
        return self.name or f"some({self.parser!r})"


def many(parser: Parser[T]) -> Parser[List[T]]:
    """Zero or more `parser` matches; never fails on a plain failure.

    `parser` must consume at least one character whenever it succeeds,
    otherwise the loop never ends.
    """
    return _Many(parser)


def some(parser: Parser[T]) -> Parser[List[T]]:
    """Like `many`, but at least one match is required."""
    return _Some(parser)


# ---------------- sequencing & alternation ----------------
class _Seq(Parser[Tuple[T, U]]):
    def __init__(self, first: Parser[T], second: Parser[U]):
        self.first = first
        self.second = second

    def parse(self, inp: Input) -> Outcome:
        first = self.first.parse(inp)
        if not first:
            return first
        second = self.second.parse(first.remaining)
        if not second:
            return second
        return Success((first.value, second.value), second.remaining)

    def __repr__(self) -> str:
        return self.name or f"({self.first!r} + {self.second!r})"


class _Alt(Parser[T]):
    def __init__(self, first: Parser[T], second: Parser[T]):
        self.first = first
        self.second = second

    def parse(self, inp: Input) -> Outcome:
        out = self.first.parse(inp)
        if out or out.fatal:
            return out
        if debug:
            log.debug("backtracking to %r at %d", self.second, inp.pos)
        return self.second.parse(inp)

    def __repr__(self) -> str:
        return self.name or f"({self.first!r} | {self.second!r})"


class _Transform(Parser[U]):
    def __init__(self, parser: Parser[T], func: Callable[[T], U]):
        self.parser = parser
        self.func = func

    def parse(self, inp: Input) -> Outcome:
        out = self.parser.parse(inp)
        if not out:
            return out
        try:
            value = self.func(out.value)
        except OverflowError as e:
            return NumericOverflow(str(e))
        return Success(value, out.remaining)

    def __repr__(self) -> str:
        return self.name or repr(self.parser)


def seq(first: Parser[T], second: Parser[U]) -> Parser[Tuple[T, U]]:
    """`first` then `second`; the value is the pair of both values."""
    return _Seq(first, second)


def alt(first: Parser[T], second: Parser[T]) -> Parser[T]:
    """First match wins.

    `second` runs against the same input `first` saw. Fatal failures
    (overflow, nesting too deep) are returned as-is without trying `second`.
    """
    return _Alt(first, second)


def transform(parser: Parser[T], func: Callable[[T], U]) -> Parser[U]:
    """Apply `func` to a successful value. An `OverflowError` raised by
    `func` becomes a `NumericOverflow` failure."""
    return _Transform(parser, func)


# ---------------- whitespace & tokens ----------------
whitespace = many(satisfy(str.isspace, name="space")).named("whitespace")


class _Token(Parser[T]):
    def __init__(self, parser: Parser[T]):
        self.parser = parser

    def parse(self, inp: Input) -> Outcome:
        inp = whitespace.parse(inp).remaining
        out = self.parser.parse(inp)
        if not out:
            return out
        return Success(out.value, whitespace.parse(out.remaining).remaining)

    def __repr__(self) -> str:
        return self.name or repr(self.parser)


def token(parser: Parser[T]) -> Parser[T]:
    """`parser` with surrounding whitespace skipped."""
    return _Token(parser)


# ---------------- lazy / recursive rules ----------------
def _active_depth() -> int:
    return getattr(_active, "depth", 0)


class _Lazy(Parser[T]):
    def __init__(
        self,
        build: Callable[[], Parser[T]],
        name: Optional[str] = None,
        max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
    ):
        if max_depth is not None and (not isinstance(max_depth, int) or max_depth < 1):
            raise ValueError(f"max_depth must be a positive int or None, got {max_depth!r}")
        self._build = build
        self._parser: Optional[Parser[T]] = None
        self._building = False
        self._lock = threading.RLock()
        self.name = name
        self.max_depth = max_depth

    @property
    def is_built(self) -> bool:
        return self._parser is not None

    def force(self) -> Parser[T]:
        """Build the wrapped parser if needed and return it."""
        parser = self._parser
        if parser is not None:
            return parser
        with self._lock:
            if self._parser is None:
                if self._building:
                    raise RuntimeError(f"lazy parser {self!r} invoked while being built")
                self._building = True
                try:
                    log.debug("building lazy parser %r", self)
                    built = self._build()
                finally:
                    self._building = False
                if not isinstance(built, Parser):
                    raise TypeError(
                        f"lazy builder for {self!r} returned {type(built).__name__}, expected a Parser"
                    )
                self._parser = built
            return self._parser

    def parse(self, inp: Input) -> Outcome:
        parser = self.force()

        # packrat: parsers are pure, so one outcome per (rule, position)
        memos = getattr(_active, "memos", None)
        key = None
        if memos is not None and inp.text is _active.memo_text:
            key = (self, inp.pos)
            out = memos.get(key)
            if out is not None:
                return out

        depth = _active_depth()
        if self.max_depth is not None and depth >= self.max_depth:
            log.debug("%r: nesting limit %d reached at %d", self, self.max_depth, inp.pos)
            return DepthExceeded(self.max_depth)
        _active.depth = depth + 1
        try:
            out = parser.parse(inp)
        finally:
            _active.depth = depth

        # fatal outcomes end the parse; DepthExceeded also depends on depth
        if key is not None and not out.fatal:
            memos[key] = out
        return out

    def __repr__(self) -> str:
        return self.name or f"lazy({getattr(self._build, '__name__', 'build')})"


def lazy(
    build: Callable[[], Parser[T]],
    name: Optional[str] = None,
    max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
) -> Parser[T]:
    """Defer constructing a parser until it is first used.

    `build` runs at most once per `lazy(...)` call, however often (or however
    deeply) the returned parser is re-entered, which is what lets rules refer
    to each other in a cycle. The first build is lock-guarded.

    At most `max_depth` lazy parsers may be active on one thread's stack; past
    that the parse fails with `DepthExceeded`. Pass `None` for no limit.

    Within one top-level call (`parser(text)`), the outcome at each input
    position is memoized, so backtracking alternatives never re-parse a rule
    at a position already tried. The memo table is dropped when the call
    returns.
    """
    return _Lazy(build, name, max_depth)


# ---------------- numerals ----------------
def _assembler(limit: int) -> Callable[[List[str]], int]:
    def assemble(digits: List[str]) -> int:
        value = 0
        for d in digits:
            value = value * 10 + (ord(d) - ord("0"))
            if value > limit:
                raise OverflowError(f"numeral {''.join(digits)} exceeds {limit}")
        return value

    return assemble


def unsigned(bits: int) -> Parser[int]:
    """Decimal digits as an unsigned integer of `bits` width."""
    if not isinstance(bits, int) or bits < 1:
        raise ValueError(f"bits must be a positive int, got {bits!r}")
    return transform(some(digit), _assembler((1 << bits) - 1)).named(f"u{bits}")


natural = unsigned(32).named("natural")
