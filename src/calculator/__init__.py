from .core import (
    Calculator,
    Evaluation,
    MatchKind,
    NestingTooDeepError,
    NumericOverflowError,
    ParseError,
    UnconsumedInputError,
    calculate,
    evaluate,
)

__all__ = [
    "Calculator",
    "Evaluation",
    "MatchKind",
    "NestingTooDeepError",
    "NumericOverflowError",
    "ParseError",
    "UnconsumedInputError",
    "calculate",
    "evaluate",
]
