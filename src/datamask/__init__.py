"""Column-or-scope name resolution and expression evaluation over tabular data."""

__all__ = [
    "And",
    "Attribute",
    "BinaryOp",
    "BinaryOperator",
    "Call",
    "Column",
    "ColumnAt",
    "ColumnInfo",
    "ColumnType",
    "Dataset",
    "Difference",
    "EvalError",
    "EvalResult",
    "EvaluationFailed",
    "Expr",
    "FilterResult",
    "FunctionKind",
    "FunctionSpec",
    "Intersect",
    "InvalidOperation",
    "Item",
    "Literal",
    "Names",
    "Not",
    "Or",
    "ResolutionContext",
    "ResolutionMode",
    "RowErrors",
    "Scope",
    "SelectionError",
    "SelectionResult",
    "SelectionSpec",
    "Symbol",
    "TypeMismatch",
    "UnaryOp",
    "UnaryOperator",
    "Union",
    "UnknownColumn",
    "UnknownField",
    "UnknownScopeVariable",
    "UnknownSymbol",
    "Vector",
    "Where",
    "all_of",
    "and_",
    "any_of",
    "call",
    "col",
    "col_at",
    "contains",
    "ends_with",
    "env",
    "evaluate",
    "evaluate_rows",
    "everything",
    "filter_rows",
    "is_boolean",
    "is_categorical",
    "is_numeric",
    "is_text",
    "lit",
    "matches",
    "names",
    "namespace",
    "not_",
    "or_",
    "ref",
    "resolve",
    "select",
    "select_columns",
    "starts_with",
    "sym",
    "transform_columns",
    "where",
]

from ._context import ResolutionContext, Vector
from ._dataset import Column, ColumnType, Dataset
from ._errors import (
    EvalError,
    EvaluationFailed,
    InvalidOperation,
    RowErrors,
    SelectionError,
    TypeMismatch,
    UnknownColumn,
    UnknownField,
    UnknownScopeVariable,
    UnknownSymbol,
)
from ._eval import evaluate, evaluate_rows, filter_rows
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
    and_,
    call,
    col,
    col_at,
    env,
    lit,
    not_,
    or_,
    ref,
    sym,
)
from ._functions import FunctionKind, FunctionSpec
from ._namespace import namespace
from ._resolver import resolve
from ._result import EvalResult, FilterResult, SelectionResult
from ._scope import Scope
from ._selector import (
    ColumnInfo,
    Difference,
    Intersect,
    Names,
    SelectionSpec,
    Union,
    Where,
    all_of,
    any_of,
    contains,
    ends_with,
    everything,
    is_boolean,
    is_categorical,
    is_numeric,
    is_text,
    matches,
    names,
    select,
    select_columns,
    starts_with,
    transform_columns,
    where,
)
