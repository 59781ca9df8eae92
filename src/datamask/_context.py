"""Resolution context: one dataset view paired with one scope."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ._dataset import Dataset
    from ._scope import Scope


class Vector(tuple):
    """Whole-column values in column-wise evaluation.

    Only vectors broadcast elementwise; tuples and lists taken from the scope
    are treated as single values.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Vector({tuple.__repr__(self)})"


def kind_of(value: Any) -> str:
    """Name the kind of a value for type checks and error messages."""
    if value is None:
        return "missing"
    if isinstance(value, Vector):
        return "vector"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "numeric"
    if isinstance(value, Enum):
        return f"categorical[{type(value).__name__}]"
    if isinstance(value, str):
        return "text"
    return type(value).__name__


def category_rank(value: Enum) -> int:
    """Position of a category member in its definition order."""
    return list(type(value)).index(value)


def order_key(value: Any) -> Any:
    """Sort key ordering categories by definition and other values naturally."""
    if isinstance(value, Enum):
        return category_rank(value)
    return value


@dataclass(frozen=True, slots=True)
class ResolutionContext:
    """The dataset view and scope symbols are resolved against.

    Attributes:
        dataset: The active dataset.
        scope: The ambient scope.
        row: The current row for row-wise evaluation, or None to resolve
            columns as whole vectors.

    """

    dataset: Dataset
    scope: Scope
    row: int | None = None

    def __post_init__(self) -> None:
        if self.row is not None and not 0 <= self.row < self.dataset.n_rows:
            msg = f"Row {self.row} out of range for {self.dataset.n_rows} rows"
            raise IndexError(msg)

    @property
    def is_row_wise(self) -> bool:
        return self.row is not None

    def at_row(self, row: int) -> ResolutionContext:
        return replace(self, row=row)

    def column_wise(self) -> ResolutionContext:
        return replace(self, row=None)

    def column_value(self, name: str) -> Any:
        """Value of column ``name`` in this view: one cell, or the whole column."""
        values = self.dataset.column(name).values
        if self.row is None:
            return Vector(values)
        return values[self.row]
