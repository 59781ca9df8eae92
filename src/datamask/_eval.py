"""Evaluation of expression trees against a dataset and an ambient scope."""

from __future__ import annotations

import logging
import operator
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from ._context import ResolutionContext, Vector, category_rank, kind_of
from ._errors import (
    EvalError,
    InvalidOperation,
    RowErrors,
    TypeMismatch,
    UnknownField,
    UnknownSymbol,
)
from ._expr import (
    And,
    Attribute,
    BinaryOp,
    BinaryOperator,
    Call,
    ColumnAt,
    Expr,
    Item,
    Literal,
    Not,
    Or,
    ResolutionMode,
    Symbol,
    UnaryOp,
    UnaryOperator,
)
from ._functions import BUILTIN_FUNCTIONS, FunctionKind, FunctionSpec, aggregate_values, is_numeric, scope_function
from ._resolver import resolve
from ._result import EvalResult, FilterResult
from ._scope import Scope

if TYPE_CHECKING:
    from collections.abc import Callable, Collection

    from ._dataset import Dataset

logger = logging.getLogger(__name__)

_ARITHMETIC_FNS: dict[BinaryOperator, Callable[[Any, Any], Any]] = {
    BinaryOperator.ADD: operator.add,
    BinaryOperator.SUB: operator.sub,
    BinaryOperator.MUL: operator.mul,
    BinaryOperator.DIV: operator.truediv,
    BinaryOperator.MOD: operator.mod,
    BinaryOperator.POW: operator.pow,
}

_COMPARISON_FNS: dict[BinaryOperator, Callable[[Any, Any], bool]] = {
    BinaryOperator.EQ: operator.eq,
    BinaryOperator.NE: operator.ne,
    BinaryOperator.LT: operator.lt,
    BinaryOperator.LE: operator.le,
    BinaryOperator.GT: operator.gt,
    BinaryOperator.GE: operator.ge,
}

# Exceptions a called function may raise that become InvalidOperation values
_CALL_ERRORS = (TypeError, ValueError, ArithmeticError, AttributeError, KeyError, IndexError, RuntimeError)

_SCALAR_TYPES = (bool, int, float, str, Enum)


class _Abort(Exception):  # noqa: N818
    """Unwinds an evaluation that produced an error value."""

    def __init__(self, error: EvalError) -> None:
        super().__init__(error.message)
        self.error = error


def _as_scope(scope: Mapping[str, Any] | None) -> Scope:
    if isinstance(scope, Scope):
        return scope
    return Scope(scope)


def _broadcast(operation: str, args: tuple[Any, ...], fn: Callable[..., Any]) -> Any:
    """Apply ``fn`` to scalars, or elementwise when any argument is a vector."""
    lengths = {len(a) for a in args if isinstance(a, Vector)}
    if not lengths:
        return fn(*args)
    if len(lengths) > 1:
        raise _Abort(
            TypeMismatch(
                operation=operation,
                kinds=tuple(f"vector[{len(a)}]" if isinstance(a, Vector) else kind_of(a) for a in args),
                detail="vector lengths differ",
            ),
        )
    (n,) = lengths
    return Vector(fn(*(a[i] if isinstance(a, Vector) else a for a in args)) for i in range(n))


def _is_category_text_pair(left: Any, right: Any) -> bool:
    """A category member on one side and plain text on the other."""
    if isinstance(left, Enum) == isinstance(right, Enum):
        return False
    member, other = (left, right) if isinstance(left, Enum) else (right, left)
    return isinstance(other, str) and not isinstance(other, Enum) and member is not None


def _as_text(value: Any) -> Any:
    # Categories that are not StrEnum members compare with text by member name
    if isinstance(value, Enum) and not isinstance(value, str):
        return value.name
    return value


def _check_comparable(op: BinaryOperator, left: Any, right: Any) -> None:
    """Reject comparisons between incompatible kinds.

    Numbers compare with numbers (int and float mix freely), text with text,
    booleans with booleans. Categories compare with text by equality, and
    order only against members of the same category.
    """
    if is_numeric(left) and is_numeric(right):
        return
    if isinstance(left, bool) and isinstance(right, bool) and not op.is_ordering:
        return
    if isinstance(left, Enum) and isinstance(right, Enum) and type(left) is type(right):
        return
    if not op.is_ordering and _is_category_text_pair(left, right):
        return
    if isinstance(left, str) and isinstance(right, str) and not isinstance(left, Enum) and not isinstance(right, Enum):
        return
    raise _Abort(TypeMismatch(operation=str(op), kinds=(kind_of(left), kind_of(right))))


def _binary_scalar(op: BinaryOperator, left: Any, right: Any) -> Any:
    if left is None or right is None:
        return None

    if op.is_arithmetic:
        if not (is_numeric(left) and is_numeric(right)):
            raise _Abort(TypeMismatch(operation=str(op), kinds=(kind_of(left), kind_of(right))))
        try:
            result = _ARITHMETIC_FNS[op](left, right)
        except (ArithmeticError, ValueError) as e:
            raise _Abort(InvalidOperation(operation=f"{left!r} {op} {right!r}", detail=str(e))) from None
        if isinstance(result, complex):
            raise _Abort(InvalidOperation(operation=f"{left!r} {op} {right!r}", detail="result is not a real number"))
        return result

    _check_comparable(op, left, right)
    if op.is_ordering and isinstance(left, Enum):
        return _COMPARISON_FNS[op](category_rank(left), category_rank(right))
    if _is_category_text_pair(left, right):
        return _COMPARISON_FNS[op](_as_text(left), _as_text(right))
    return _COMPARISON_FNS[op](left, right)


def _in_scalar(value: Any, collection: Collection[Any]) -> Any:
    """Membership under the same typing rules as ``==``; missing stays missing."""
    if value is None:
        return None
    matches = [_binary_scalar(BinaryOperator.EQ, value, element) for element in collection if element is not None]
    return any(match is True for match in matches)


def _logical_scalar(operation: str, left: Any, right: Any) -> Any:
    """Three-valued ``and``/``or``: a missing operand yields missing unless the other decides."""
    for value in (left, right):
        if value is not None and not isinstance(value, bool):
            raise _Abort(
                TypeMismatch(operation=operation, kinds=(kind_of(value),), detail="operands must be boolean"),
            )
    decisive = operation == "or"
    if left is decisive or right is decisive:
        return decisive
    if left is None or right is None:
        return None
    return not decisive


def _not_scalar(value: Any) -> Any:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise _Abort(TypeMismatch(operation="not", kinds=(kind_of(value),), detail="operand must be boolean"))
    return not value


def _unary_scalar(op: UnaryOperator, value: Any) -> Any:
    if value is None:
        return None
    if not is_numeric(value):
        raise _Abort(TypeMismatch(operation=str(op), kinds=(kind_of(value),)))
    return -value if op is UnaryOperator.NEG else +value


def _get_field(base: Any, name: Any, owner: str) -> Any:
    """Take a field or item from a value obtained from the scope.

    Mappings are indexed by key, sequences by integer position, other objects
    expose their public attributes. Columns and scalars have no fields.
    """
    if base is None or isinstance(base, (Vector, *_SCALAR_TYPES)):
        raise _Abort(
            TypeMismatch(
                operation=f"field '{name}'",
                kinds=(kind_of(base),),
                detail=f"'{owner}' has no fields",
            ),
        )
    if isinstance(base, Mapping):
        try:
            present = name in base
        except TypeError:
            raise _Abort(
                TypeMismatch(operation="index", kinds=(kind_of(name),), detail="key must be hashable"),
            ) from None
        if present:
            return base[name]
        raise _Abort(UnknownField(owner=owner, name=str(name)))
    if isinstance(base, (list, tuple)):
        if not isinstance(name, int) or isinstance(name, bool):
            raise _Abort(
                TypeMismatch(operation="index", kinds=(kind_of(name),), detail="sequence index must be an integer"),
            )
        if -len(base) <= name < len(base):
            return base[name]
        raise _Abort(UnknownField(owner=owner, name=str(name)))
    if isinstance(name, str) and not name.startswith("_"):
        try:
            return getattr(base, name)
        except AttributeError:
            pass
        except _CALL_ERRORS as e:
            raise _Abort(InvalidOperation(operation=f"{owner}.{name}", detail=str(e) or type(e).__name__)) from None
    raise _Abort(UnknownField(owner=owner, name=str(name)))


class _Evaluator:
    """Walks an expression tree, resolving every symbol through the resolver."""

    def __init__(self, functions: Mapping[str, FunctionSpec] | None = None) -> None:
        self.functions: dict[str, FunctionSpec] = {**BUILTIN_FUNCTIONS, **(functions or {})}
        # Aggregate results by call node; the column-wise view is the same for every row
        self._aggregates: dict[int, tuple[Any, EvalError | None]] = {}

    def eval(self, node: Expr, ctx: ResolutionContext) -> Any:  # noqa: C901, PLR0911
        match node:
            case Literal(value):
                return value
            case Symbol(name, mode):
                return self._resolve(name, ctx, mode)
            case ColumnAt(key):
                return self._resolve(self.eval(key, ctx), ctx, ResolutionMode.COLUMN_BY_KEY)
            case Attribute(base, name):
                return _get_field(self.eval(base, ctx), name, str(base))
            case Item():
                return self._item(node, ctx)
            case UnaryOp(op, operand):
                value = self.eval(operand, ctx)
                return _broadcast(str(op), (value,), lambda v: _unary_scalar(op, v))
            case BinaryOp(op, left, right):
                return self._binary(op, self.eval(left, ctx), self.eval(right, ctx))
            case And(operands):
                return self._logical("and", operands, ctx)
            case Or(operands):
                return self._logical("or", operands, ctx)
            case Not(operand):
                return _broadcast("not", (self.eval(operand, ctx),), _not_scalar)
            case Call():
                return self._call(node, ctx)
            case _:
                msg = f"Unknown expression node: {type(node).__name__}"
                raise TypeError(msg)

    @staticmethod
    def _resolve(symbol: Any, ctx: ResolutionContext, mode: ResolutionMode) -> Any:
        result = resolve(symbol, ctx, mode)
        if result.error is not None:
            raise _Abort(result.error)
        return result.value

    def _item(self, node: Item, ctx: ResolutionContext) -> Any:
        base = self.eval(node.base, ctx)
        key = self.eval(node.key, ctx)
        if isinstance(key, Vector):
            raise _Abort(TypeMismatch(operation="index", kinds=("vector",), detail="index must be a single value"))
        if isinstance(base, Vector):
            if not isinstance(key, int) or isinstance(key, bool):
                raise _Abort(TypeMismatch(operation="index", kinds=(kind_of(key),), detail="row index must be an integer"))
            if not 0 <= key < len(base):
                raise _Abort(InvalidOperation(operation="index", detail=f"row {key} out of range for {len(base)} rows"))
            return base[key]
        return _get_field(base, key, str(node.base))

    @staticmethod
    def _binary(op: BinaryOperator, left: Any, right: Any) -> Any:
        if op is BinaryOperator.IN:
            if isinstance(right, Vector):
                right = tuple(right)
            if not isinstance(right, (list, tuple, set, frozenset)):
                raise _Abort(
                    TypeMismatch(operation="in", kinds=(kind_of(right),), detail="right operand must be a collection"),
                )
            return _broadcast("in", (left,), lambda v: _in_scalar(v, right))
        return _broadcast(str(op), (left, right), lambda a, b: _binary_scalar(op, a, b))

    def _logical(self, operation: str, operands: tuple[Expr, ...], ctx: ResolutionContext) -> Any:
        decisive = operation == "or"
        acc: Any = not decisive
        for operand in operands:
            value = self.eval(operand, ctx)
            acc = _broadcast(operation, (acc, value), lambda a, b: _logical_scalar(operation, a, b))
            # Only a scalar result can short-circuit
            if acc is decisive:
                return acc
        return acc

    def _lookup_function(self, name: str, ctx: ResolutionContext) -> FunctionSpec:
        if name in self.functions:
            return self.functions[name]
        if name in ctx.scope and callable(ctx.scope[name]):
            return scope_function(name, ctx.scope[name])
        raise _Abort(UnknownSymbol(name))

    def _call(self, node: Call, ctx: ResolutionContext) -> Any:
        spec = self._lookup_function(node.function, ctx)
        arity_error = spec.check_arity(len(node.args))
        if arity_error is not None:
            raise _Abort(arity_error)

        if spec.kind is FunctionKind.AGGREGATE:
            if id(node) not in self._aggregates:
                try:
                    self._aggregates[id(node)] = (self._aggregate(spec, node, ctx), None)
                except _Abort as e:
                    self._aggregates[id(node)] = (None, e.error)
            value, error = self._aggregates[id(node)]
            if error is not None:
                raise _Abort(error)
            return value

        args = tuple(self.eval(arg, ctx) for arg in node.args)

        def apply_scalar(*values: Any) -> Any:
            if spec.propagate_missing and any(v is None for v in values):
                return None
            for position, value in enumerate(values):
                error = spec.check_value(position, value)
                if error is not None:
                    raise _Abort(error)
            return self._apply(spec, *values)

        return _broadcast(spec.name, args, apply_scalar)

    def _aggregate(self, spec: FunctionSpec, node: Call, ctx: ResolutionContext) -> Any:
        # Aggregates always see whole columns, also inside row-wise predicates
        values = aggregate_values(self.eval(node.args[0], ctx.column_wise()))
        for value in values:
            error = spec.check_value(0, value)
            if error is not None:
                raise _Abort(error)
        return self._apply(spec, values)

    @staticmethod
    def _apply(spec: FunctionSpec, *args: Any) -> Any:
        try:
            return spec.fn(*args)
        except _CALL_ERRORS as e:
            raise _Abort(InvalidOperation(operation=spec.name, detail=str(e) or type(e).__name__)) from None


def evaluate(
    expr: Expr,
    dataset: Dataset,
    scope: Mapping[str, Any] | None = None,
    *,
    functions: Mapping[str, FunctionSpec] | None = None,
) -> EvalResult:
    """Evaluate an expression column-wise.

    Symbols that resolve to columns yield whole-column ``Vector`` values and
    operators broadcast over them elementwise.

    Args:
        expr: The expression tree.
        dataset: The dataset columns are resolved against.
        scope: Caller variables; copied, never mutated.
        functions: Extra functions, taking precedence over the built-ins.

    Returns:
        EvalResult with the value, or with the first error value encountered.

    """
    context = ResolutionContext(dataset=dataset, scope=_as_scope(scope))
    logger.debug("Evaluating %s over %d columns", expr, len(dataset.columns))
    try:
        return EvalResult(_Evaluator(functions).eval(expr, context))
    except _Abort as e:
        logger.debug("Evaluation of %s failed: %s", expr, e.error.message)
        return EvalResult(error=e.error)


def _evaluate_each_row(
    expr: Expr,
    dataset: Dataset,
    scope: Mapping[str, Any] | None,
    functions: Mapping[str, FunctionSpec] | None,
    check: Callable[[Any], EvalError | None] | None = None,
) -> tuple[list[Any], list[tuple[int, EvalError]]]:
    context = ResolutionContext(dataset=dataset, scope=_as_scope(scope))
    evaluator = _Evaluator(functions)
    values: list[Any] = []
    errors: list[tuple[int, EvalError]] = []
    for i in range(dataset.n_rows):
        try:
            value = evaluator.eval(expr, context.at_row(i))
        except _Abort as e:
            errors.append((i, e.error))
            continue
        error = check(value) if check is not None else None
        if error is not None:
            errors.append((i, error))
            continue
        values.append(value)
    return values, errors


def evaluate_rows(
    expr: Expr,
    dataset: Dataset,
    scope: Mapping[str, Any] | None = None,
    *,
    functions: Mapping[str, FunctionSpec] | None = None,
) -> EvalResult:
    """Evaluate an expression once per row.

    Returns:
        EvalResult whose value is a tuple with one value per row, or whose
        error is ``RowErrors`` listing every failing row.

    """
    values, errors = _evaluate_each_row(expr, dataset, scope, functions)
    if errors:
        return EvalResult(error=RowErrors(errors=tuple(errors), n_rows=dataset.n_rows))
    return EvalResult(tuple(values))


def _check_predicate_value(value: Any) -> EvalError | None:
    if value is None or isinstance(value, bool):
        return None
    return TypeMismatch(operation="filter", kinds=(kind_of(value),), detail="predicate must be boolean")


def filter_rows(
    predicate: Expr,
    dataset: Dataset,
    scope: Mapping[str, Any] | None = None,
    *,
    functions: Mapping[str, FunctionSpec] | None = None,
) -> FilterResult:
    """Keep the rows for which the predicate evaluates to True.

    The predicate is evaluated row-wise. A missing result drops the row. Rows
    whose evaluation fails are never dropped silently: any failure fails the
    whole call with ``RowErrors`` naming the offending rows.

    Example:
        >>> data = Dataset.from_columns({"x": [1, 0, 3], "y": [2, 0, 4]})
        >>> filter_rows(col("x") > env("min"), data, {"min": 1}).unwrap().to_dict()
        {'x': [3], 'y': [4]}

    """
    values, errors = _evaluate_each_row(predicate, dataset, scope, functions, check=_check_predicate_value)
    if errors:
        error = RowErrors(errors=tuple(errors), n_rows=dataset.n_rows)
        logger.debug("Filter failed: %s", error.message)
        return FilterResult(error=error)

    kept = tuple(i for i, value in enumerate(values) if value is True)
    logger.debug("Filter kept %d of %d rows", len(kept), dataset.n_rows)
    return FilterResult(dataset=dataset.take(kept), kept=kept)
