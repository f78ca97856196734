from .core import (
    DEFAULT_MAX_DEPTH,
    U32_MAX,
    FAILURE,
    DepthExceeded,
    Failure,
    Input,
    NumericOverflow,
    Outcome,
    Parser,
    Success,
    alt,
    digit,
    item,
    lazy,
    literal,
    many,
    natural,
    satisfy,
    seq,
    some,
    token,
    transform,
    unsigned,
    whitespace,
)

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "U32_MAX",
    "FAILURE",
    "DepthExceeded",
    "Failure",
    "Input",
    "NumericOverflow",
    "Outcome",
    "Parser",
    "Success",
    "alt",
    "digit",
    "item",
    "lazy",
    "literal",
    "many",
    "natural",
    "satisfy",
    "seq",
    "some",
    "token",
    "transform",
    "unsigned",
    "whitespace",
]
