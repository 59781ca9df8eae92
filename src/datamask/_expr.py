"""Expression trees evaluated against a dataset and a scope.

Trees are built by the caller, either directly from the node classes or with
the builder helpers and Python operators:

    >>> expr = col("x") > env("min")
    >>> str(expr)
    'data.x > env.min'

Every symbol carries an explicit resolution mode, so the same name may resolve
to a column in one place and to a scope variable in another.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ._path import AttributePart, ItemPart, RefPath


class ResolutionMode(StrEnum):
    """Where a symbol is looked up."""

    DEFAULT = "default"  # Column first, then scope
    COLUMN_ONLY = "column_only"
    SCOPE_ONLY = "scope_only"
    COLUMN_BY_KEY = "column_by_key"  # Runtime value used as a column name


class UnaryOperator(StrEnum):
    NEG = "-"
    POS = "+"


class BinaryOperator(StrEnum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    POW = "**"
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    IN = "in"

    @property
    def is_arithmetic(self) -> bool:
        return self in _ARITHMETIC

    @property
    def is_ordering(self) -> bool:
        return self in _ORDERING


_ARITHMETIC = frozenset(
    {
        BinaryOperator.ADD,
        BinaryOperator.SUB,
        BinaryOperator.MUL,
        BinaryOperator.DIV,
        BinaryOperator.MOD,
        BinaryOperator.POW,
    },
)
_ORDERING = frozenset({BinaryOperator.LT, BinaryOperator.LE, BinaryOperator.GT, BinaryOperator.GE})


class Expr:
    """Base class of expression nodes, providing operator-based construction."""

    __slots__ = ()

    def __gt__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.GT, self, as_expr(other))

    def __ge__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.GE, self, as_expr(other))

    def __lt__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.LT, self, as_expr(other))

    def __le__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.LE, self, as_expr(other))

    def __add__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.ADD, self, as_expr(other))

    def __radd__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.ADD, as_expr(other), self)

    def __sub__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.SUB, self, as_expr(other))

    def __rsub__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.SUB, as_expr(other), self)

    def __mul__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.MUL, self, as_expr(other))

    def __rmul__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.MUL, as_expr(other), self)

    def __truediv__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.DIV, self, as_expr(other))

    def __rtruediv__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.DIV, as_expr(other), self)

    def __mod__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.MOD, self, as_expr(other))

    def __pow__(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.POW, self, as_expr(other))

    def __neg__(self) -> UnaryOp:
        return UnaryOp(UnaryOperator.NEG, self)

    def __pos__(self) -> UnaryOp:
        return UnaryOp(UnaryOperator.POS, self)

    def __and__(self, other: Any) -> And:
        return and_(self, other)

    def __rand__(self, other: Any) -> And:
        return and_(other, self)

    def __or__(self, other: Any) -> Or:
        return or_(self, other)

    def __ror__(self, other: Any) -> Or:
        return or_(other, self)

    def __invert__(self) -> Not:
        return Not(self)

    def __getitem__(self, key: Any) -> Item:
        return Item(self, as_expr(key))

    # == and != keep their structural meaning on nodes
    def eq(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.EQ, self, as_expr(other))

    def ne(self, other: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.NE, self, as_expr(other))

    def isin(self, values: Any) -> BinaryOp:
        return BinaryOp(BinaryOperator.IN, self, as_expr(values))

    def attr(self, name: str) -> Attribute:
        return Attribute(self, name)


@dataclass(frozen=True, slots=True)
class Literal(Expr):
    value: Any

    def __str__(self) -> str:
        return repr(self.value)


@dataclass(frozen=True, slots=True)
class Symbol(Expr):
    name: str
    mode: ResolutionMode = ResolutionMode.DEFAULT

    def __post_init__(self) -> None:
        if self.mode is ResolutionMode.COLUMN_BY_KEY:
            msg = "Use ColumnAt for computed column keys"
            raise ValueError(msg)

    def __str__(self) -> str:
        match self.mode:
            case ResolutionMode.COLUMN_ONLY:
                return f"data.{self.name}" if self.name.isidentifier() else f"data[{self.name!r}]"
            case ResolutionMode.SCOPE_ONLY:
                return f"env.{self.name}"
            case _:
                return self.name


@dataclass(frozen=True, slots=True)
class ColumnAt(Expr):
    """Column lookup by a key computed at evaluation time."""

    key: Expr

    def __str__(self) -> str:
        return f"data[{self.key}]"


@dataclass(frozen=True, slots=True)
class Attribute(Expr):
    base: Expr
    name: str

    def __str__(self) -> str:
        return f"{_wrap(self.base)}.{self.name}"


@dataclass(frozen=True, slots=True)
class Item(Expr):
    base: Expr
    key: Expr

    def __str__(self) -> str:
        return f"{_wrap(self.base)}[{self.key}]"


@dataclass(frozen=True, slots=True)
class UnaryOp(Expr):
    op: UnaryOperator
    operand: Expr

    def __str__(self) -> str:
        return f"{self.op}{_wrap(self.operand)}"


@dataclass(frozen=True, slots=True)
class BinaryOp(Expr):
    op: BinaryOperator
    left: Expr
    right: Expr

    def __str__(self) -> str:
        return f"{_wrap(self.left)} {self.op} {_wrap(self.right)}"


@dataclass(frozen=True, slots=True)
class And(Expr):
    operands: tuple[Expr, ...]

    def __str__(self) -> str:
        return " & ".join(_wrap(o) for o in self.operands)


@dataclass(frozen=True, slots=True)
class Or(Expr):
    operands: tuple[Expr, ...]

    def __str__(self) -> str:
        return " | ".join(_wrap(o) for o in self.operands)


@dataclass(frozen=True, slots=True)
class Not(Expr):
    operand: Expr

    def __str__(self) -> str:
        return f"~{_wrap(self.operand)}"


@dataclass(frozen=True, slots=True)
class Call(Expr):
    function: str
    args: tuple[Expr, ...] = ()

    def __str__(self) -> str:
        return f"{self.function}({', '.join(str(a) for a in self.args)})"


def _wrap(expr: Expr) -> str:
    if isinstance(expr, (BinaryOp, And, Or)):
        return f"({expr})"
    return str(expr)


def as_expr(value: Any) -> Expr:
    """Wrap a plain value as a literal; expressions pass through."""
    if isinstance(value, Expr):
        return value
    return lit(value)


def lit(value: Any) -> Literal:
    # Lists become tuples so literal nodes stay hashable
    if isinstance(value, list):
        value = tuple(value)
    elif isinstance(value, set):
        value = frozenset(value)
    return Literal(value)


def ref(path: str, mode: ResolutionMode = ResolutionMode.DEFAULT) -> Expr:
    """Build a symbol lookup followed by attribute and item accesses.

    ``ref("input.var", ResolutionMode.SCOPE_ONLY)`` looks up ``input`` in the
    scope only and then takes its ``var`` field.
    """
    parsed = RefPath.parse(path)
    expr: Expr = Symbol(parsed.root, mode)
    for part in parsed.parts:
        match part:
            case AttributePart(name):
                expr = Attribute(expr, name)
            case ItemPart(key):
                expr = Item(expr, Literal(key))
            case _:
                msg = f"Unknown part type: {type(part)}"
                raise TypeError(msg)
    return expr


def sym(name: str) -> Symbol:
    """Default-mode symbol: a column if one has this name, else a scope variable."""
    return Symbol(name)


def col(name: str) -> Symbol:
    """Column-only symbol. The name is taken literally, dots included."""
    return Symbol(name, ResolutionMode.COLUMN_ONLY)


def env(path: str) -> Expr:
    """Scope-only reference, optionally followed by ``.field`` / ``[key]`` accesses."""
    return ref(path, ResolutionMode.SCOPE_ONLY)


def col_at(key: Any) -> ColumnAt:
    """Column whose name is computed at evaluation time, typically from the scope."""
    return ColumnAt(as_expr(key))


def call(function: str, *args: Any) -> Call:
    return Call(function, tuple(as_expr(a) for a in args))


def and_(*operands: Any) -> And:
    flat: list[Expr] = []
    for operand in operands:
        expr = as_expr(operand)
        flat.extend(expr.operands if isinstance(expr, And) else (expr,))
    return And(tuple(flat))


def or_(*operands: Any) -> Or:
    flat: list[Expr] = []
    for operand in operands:
        expr = as_expr(operand)
        flat.extend(expr.operands if isinstance(expr, Or) else (expr,))
    return Or(tuple(flat))


def not_(operand: Any) -> Not:
    return Not(as_expr(operand))
