"""Built-in functions callable from expressions."""

from __future__ import annotations

import math
import statistics
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, StrEnum, auto
from typing import Any

from ._context import Vector, kind_of, order_key
from ._errors import EvalError, InvalidOperation, TypeMismatch


class FunctionKind(StrEnum):
    ELEMENTWISE = auto()  # Applied per value, broadcast over vectors
    AGGREGATE = auto()  # Applied once to a whole column


def is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_textual(value: Any) -> bool:
    # Includes StrEnum categories
    return isinstance(value, str)


def is_boolean(value: Any) -> bool:
    return isinstance(value, bool)


def _any(_value: Any) -> bool:
    return True


def _orderable(value: Any) -> bool:
    return is_numeric(value) or is_textual(value) or isinstance(value, Enum)


@dataclass(frozen=True, slots=True)
class FunctionSpec:
    """A function available to expressions.

    Attributes:
        name: The name used in ``Call`` nodes.
        fn: The implementation. Elementwise functions get one value per
            argument; aggregates get the list of non-missing values.
        kind: Elementwise or aggregate.
        accepts: Per-argument checks on non-missing values; the last check
            applies to any further arguments.
        min_args: Minimum number of arguments.
        max_args: Maximum number of arguments, None for unbounded.
        propagate_missing: For elementwise functions, return missing without
            calling ``fn`` when any argument is missing.

    """

    name: str
    fn: Callable[..., Any]
    kind: FunctionKind = FunctionKind.ELEMENTWISE
    accepts: tuple[Callable[[Any], bool], ...] = (_any,)
    min_args: int = 1
    max_args: int | None = 1
    propagate_missing: bool = True

    def check_arity(self, n_args: int) -> EvalError | None:
        if n_args < self.min_args or (self.max_args is not None and n_args > self.max_args):
            expected = str(self.min_args) if self.max_args == self.min_args else f"{self.min_args}..{self.max_args or 'n'}"
            return InvalidOperation(operation=self.name, detail=f"expected {expected} arguments, got {n_args}")
        return None

    def check_value(self, position: int, value: Any) -> EvalError | None:
        if value is None:
            return None
        check = self.accepts[min(position, len(self.accepts) - 1)]
        if check(value):
            return None
        return TypeMismatch(
            operation=self.name,
            kinds=(kind_of(value),),
            detail=f"argument {position + 1} not accepted",
        )


def _mean(values: list[Any]) -> float | None:
    return statistics.fmean(values) if values else None


def _median(values: list[Any]) -> Any:
    return statistics.median(values) if values else None


def _ordered(values: list[Any]) -> list[Any]:
    # Categories order by definition, and only among members of one category
    categories = {type(v) for v in values if isinstance(v, Enum)}
    if categories and (len(categories) > 1 or not all(isinstance(v, Enum) for v in values)):
        msg = "cannot order values of different categories"
        raise TypeError(msg)
    return values


def _min(values: list[Any]) -> Any:
    return min(_ordered(values), key=order_key) if values else None


def _max(values: list[Any]) -> Any:
    return max(_ordered(values), key=order_key) if values else None


def _round(value: float, digits: int = 0) -> float:
    if not float(digits).is_integer():
        msg = f"digits must be a whole number, got {digits}"
        raise ValueError(msg)
    return round(value, int(digits))


def _log(value: float, base: float | None = None) -> float:
    return math.log(value) if base is None else math.log(value, base)


def _if_else(condition: Any, when_true: Any, when_false: Any) -> Any:
    if condition is None:
        return None
    if not isinstance(condition, bool):
        msg = f"condition must be boolean, got {kind_of(condition)}"
        raise TypeError(msg)
    return when_true if condition else when_false


def _coalesce(*values: Any) -> Any:
    return next((v for v in values if v is not None), None)


def _text(value: Any) -> str:
    # StrEnum members render as their value
    return str(value)


BUILTIN_FUNCTIONS: dict[str, FunctionSpec] = {
    spec.name: spec
    for spec in (
        # Aggregates
        FunctionSpec("mean", _mean, FunctionKind.AGGREGATE, (is_numeric,)),
        FunctionSpec("median", _median, FunctionKind.AGGREGATE, (is_numeric,)),
        FunctionSpec("sum", sum, FunctionKind.AGGREGATE, (is_numeric,)),
        FunctionSpec("min", _min, FunctionKind.AGGREGATE, (_orderable,)),
        FunctionSpec("max", _max, FunctionKind.AGGREGATE, (_orderable,)),
        FunctionSpec("count", len, FunctionKind.AGGREGATE),
        FunctionSpec("n_distinct", lambda values: len(set(values)), FunctionKind.AGGREGATE),
        # Numeric
        FunctionSpec("abs", abs, accepts=(is_numeric,)),
        FunctionSpec("round", _round, accepts=(is_numeric,), max_args=2),
        FunctionSpec("sqrt", math.sqrt, accepts=(is_numeric,)),
        FunctionSpec("log", _log, accepts=(is_numeric,), max_args=2),
        FunctionSpec("exp", math.exp, accepts=(is_numeric,)),
        # Text
        FunctionSpec("lower", lambda s: _text(s).lower(), accepts=(is_textual,)),
        FunctionSpec("upper", lambda s: _text(s).upper(), accepts=(is_textual,)),
        FunctionSpec("nchar", lambda s: len(_text(s)), accepts=(is_textual,)),
        FunctionSpec(
            "starts_with",
            lambda s, prefix: _text(s).startswith(prefix),
            accepts=(is_textual,),
            min_args=2,
            max_args=2,
        ),
        FunctionSpec(
            "ends_with",
            lambda s, suffix: _text(s).endswith(suffix),
            accepts=(is_textual,),
            min_args=2,
            max_args=2,
        ),
        FunctionSpec(
            "contains",
            lambda s, part: part in _text(s),
            accepts=(is_textual,),
            min_args=2,
            max_args=2,
        ),
        # Missing values and conditionals
        FunctionSpec("is_missing", lambda value: value is None, propagate_missing=False),
        FunctionSpec(
            "if_else",
            _if_else,
            accepts=(is_boolean, _any),
            min_args=3,
            max_args=3,
            propagate_missing=False,
        ),
        FunctionSpec("coalesce", _coalesce, max_args=None, propagate_missing=False),
    )
}


def scope_function(name: str, fn: Callable[..., Any]) -> FunctionSpec:
    """Wrap a callable taken from the scope as an elementwise function."""
    return FunctionSpec(name, fn, min_args=0, max_args=None, propagate_missing=False)


def aggregate_values(value: Any) -> list[Any]:
    """The non-missing values an aggregate operates on."""
    if isinstance(value, (Vector, list, tuple)):
        return [v for v in value if v is not None]
    return [] if value is None else [value]
