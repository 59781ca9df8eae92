"""TOML request files: datasets, scopes, expressions and selections as data."""

import logging
import math
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ._dataset import MISSING_TEXT, ColumnType, Dataset
from ._expr import (
    Attribute,
    BinaryOp,
    BinaryOperator,
    ColumnAt,
    Expr,
    Item,
    Literal,
    Not,
    UnaryOp,
    UnaryOperator,
    and_,
    call,
    col,
    env,
    lit,
    or_,
    ref,
)
from ._selector import (
    SelectionSpec,
    Union,
    contains,
    ends_with,
    everything,
    is_boolean,
    is_categorical,
    is_numeric,
    is_text,
    matches,
    starts_with,
)
from ._selector import names as names_spec

logger = logging.getLogger(__name__)


class ExpressionFormatError(ValueError):
    """A TOML table does not describe a valid expression or selection."""


class RequestError(Exception):
    """A request file cannot be read or validated."""


def _single(table: dict[str, Any], key: str) -> bool:
    return set(table) == {key}


def expression_from_toml(obj: Any) -> Expr:  # noqa: C901, PLR0911, PLR0912
    """Decode an expression from its TOML representation.

    Bare scalars and arrays are literals. Tables name their node kind by key:
    ``{ data = "x" }``, ``{ env = "input.var" }``, ``{ sym = "x" }``,
    ``{ data_at = <expr> }``, ``{ lit = ... }``,
    ``{ op = ">", left = <expr>, right = <expr> }``, ``{ op = "-", operand = <expr> }``,
    ``{ and = [...] }``, ``{ or = [...] }``, ``{ not = <expr> }``,
    ``{ call = "mean", args = [...] }``, ``{ attr = "name", of = <expr> }``,
    ``{ item = <expr>, of = <expr> }``.

    Raises:
        ExpressionFormatError: If the object matches no node kind.

    """
    if isinstance(obj, Expr):
        return obj
    if isinstance(obj, (bool, int, float, str)):
        return Literal(obj)
    if isinstance(obj, list):
        if any(isinstance(item, (dict, list)) for item in obj):
            msg = f"Literal arrays may only hold scalars. Got: {obj!r}"
            raise ExpressionFormatError(msg)
        return lit(obj)
    if not isinstance(obj, dict):
        msg = f"Cannot decode expression from {type(obj).__name__}: {obj!r}"
        raise ExpressionFormatError(msg)

    if "op" in obj:
        op = obj["op"]
        if set(obj) == {"op", "left", "right"}:
            try:
                binary = BinaryOperator(op)
            except ValueError:
                msg = f"Unknown binary operator '{op}'"
                raise ExpressionFormatError(msg) from None
            return BinaryOp(binary, expression_from_toml(obj["left"]), expression_from_toml(obj["right"]))
        if set(obj) == {"op", "operand"}:
            try:
                unary = UnaryOperator(op)
            except ValueError:
                msg = f"Unknown unary operator '{op}'"
                raise ExpressionFormatError(msg) from None
            return UnaryOp(unary, expression_from_toml(obj["operand"]))
        msg = f"Operator table needs 'left' and 'right', or 'operand'. Got keys: {sorted(obj)}"
        raise ExpressionFormatError(msg)

    if _single(obj, "lit"):
        return lit(obj["lit"])
    if _single(obj, "data"):
        return col(_text_value(obj, "data"))
    if _single(obj, "env"):
        return _parse_ref(_text_value(obj, "env"), env)
    if _single(obj, "sym"):
        return _parse_ref(_text_value(obj, "sym"), ref)
    if _single(obj, "data_at"):
        return ColumnAt(expression_from_toml(obj["data_at"]))
    if _single(obj, "and"):
        return and_(*_operands(obj, "and"))
    if _single(obj, "or"):
        return or_(*_operands(obj, "or"))
    if _single(obj, "not"):
        return Not(expression_from_toml(obj["not"]))
    if "call" in obj and set(obj) <= {"call", "args"}:
        args = obj.get("args", [])
        if not isinstance(args, list):
            msg = f"'args' of call '{obj['call']}' must be an array"
            raise ExpressionFormatError(msg)
        return call(_text_value(obj, "call"), *(expression_from_toml(arg) for arg in args))
    if set(obj) == {"attr", "of"}:
        return Attribute(expression_from_toml(obj["of"]), _text_value(obj, "attr"))
    if set(obj) == {"item", "of"}:
        return Item(expression_from_toml(obj["of"]), expression_from_toml(obj["item"]))

    msg = f"Unrecognized expression table with keys: {sorted(obj)}"
    raise ExpressionFormatError(msg)


def _text_value(table: dict[str, Any], key: str) -> str:
    value = table[key]
    if not isinstance(value, str):
        msg = f"'{key}' must be a string. Got: {value!r}"
        raise ExpressionFormatError(msg)
    return value


def _parse_ref(path: str, build: Any) -> Expr:
    try:
        return build(path)
    except ValueError as e:
        raise ExpressionFormatError(str(e)) from e


def _operands(table: dict[str, Any], key: str) -> list[Expr]:
    operands = table[key]
    if not isinstance(operands, list) or not operands:
        msg = f"'{key}' must be a non-empty array of expressions"
        raise ExpressionFormatError(msg)
    return [expression_from_toml(operand) for operand in operands]


_TYPE_SELECTIONS = {
    ColumnType.NUMERIC: is_numeric,
    ColumnType.TEXT: is_text,
    ColumnType.BOOLEAN: is_boolean,
    ColumnType.CATEGORICAL: is_categorical,
}

_NAME_SELECTIONS = {
    "starts_with": starts_with,
    "ends_with": ends_with,
    "contains": contains,
    "matches": matches,
}


def selection_from_toml(obj: Any) -> SelectionSpec:  # noqa: C901, PLR0911
    """Decode a selection from its TOML representation.

    Raises:
        ExpressionFormatError: If the table describes no known selection.

    """
    if isinstance(obj, SelectionSpec):
        return obj
    if not isinstance(obj, dict):
        msg = f"Selection must be a table. Got: {obj!r}"
        raise ExpressionFormatError(msg)

    for key, strict in (("all_of", True), ("any_of", False)):
        if _single(obj, key):
            return names_spec(*_name_list(obj, key), strict=strict)
    if "names" in obj and set(obj) <= {"names", "strict"}:
        strict = obj.get("strict", True)
        if not isinstance(strict, bool):
            msg = "'strict' must be a boolean"
            raise ExpressionFormatError(msg)
        return names_spec(*_name_list(obj, "names"), strict=strict)
    if _single(obj, "where"):
        kind = obj["where"]
        if kind == "everything":
            return everything()
        try:
            return _TYPE_SELECTIONS[ColumnType(kind)]()
        except ValueError:
            msg = f"Unknown column type '{kind}' in where selection"
            raise ExpressionFormatError(msg) from None
    for key, build in _NAME_SELECTIONS.items():
        if _single(obj, key):
            return build(_text_value(obj, key))
    if _single(obj, "union"):
        parts = obj["union"]
        if not isinstance(parts, list) or not parts:
            msg = "'union' must be a non-empty array of selections"
            raise ExpressionFormatError(msg)
        return Union(tuple(selection_from_toml(part) for part in parts))
    if set(obj) == {"of", "except"}:
        return selection_from_toml(obj["of"]) - selection_from_toml(obj["except"])

    msg = f"Unrecognized selection table with keys: {sorted(obj)}"
    raise ExpressionFormatError(msg)


def _name_list(table: dict[str, Any], key: str) -> list[str]:
    value = table[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = f"'{key}' must be an array of column names"
        raise ExpressionFormatError(msg)
    return value


class EvalSection(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    expr: Expr
    rowwise: bool = False

    @field_validator("expr", mode="before")
    @classmethod
    def _decode_expr(cls, value: Any) -> Expr:
        return expression_from_toml(value)


class FilterSection(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    where: Expr

    @field_validator("where", mode="before")
    @classmethod
    def _decode_where(cls, value: Any) -> Expr:
        return expression_from_toml(value)


class RequestFile(BaseModel):
    """A dataset and scope, with the operations to run on them."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    data: Dataset
    scope: dict[str, Any] = Field(default_factory=dict)
    eval: EvalSection | None = None
    filter: FilterSection | None = None
    select: SelectionSpec | None = None

    @field_validator("select", mode="before")
    @classmethod
    def _decode_select(cls, value: Any) -> SelectionSpec | None:
        if value is None:
            return None
        return selection_from_toml(value)


def load_request(path: Path) -> RequestFile:
    """Load and validate a TOML request file.

    Raises:
        RequestError: If the file is not valid TOML or not a valid request.

    """
    logger.debug("Loading request from %s", path)
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        msg = f"Cannot read {path}: {e}"
        raise RequestError(msg) from e
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise RequestError(msg) from e

    try:
        return RequestFile.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid request in {path}:\n{e}"
        raise RequestError(msg) from e


def _serialize_value(value: Any, column_type: ColumnType) -> Any:
    """Make one cell TOML-representable; TOML has no null."""
    if value is None:
        return math.nan if column_type is ColumnType.NUMERIC else MISSING_TEXT
    if isinstance(value, Enum):
        return value.value
    return value


def dataset_to_toml_dict(dataset: Dataset) -> dict[str, list[Any]]:
    return {
        column.name: [_serialize_value(value, column.type) for value in column.values] for column in dataset.columns
    }


def export_dataset_to_toml(dataset: Dataset, output_path: Path) -> None:
    """Write a dataset as a ``[data]`` table that ``load_request`` reads back."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("wb") as f:
        tomli_w.dump({"data": dataset_to_toml_dict(dataset)}, f)
    logger.debug("Wrote %d rows to %s", dataset.n_rows, output_path)
