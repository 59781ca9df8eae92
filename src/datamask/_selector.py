"""Resolution of column selections into concrete, validated column names."""

from __future__ import annotations

import logging
import re
import statistics
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ._context import order_key
from ._dataset import Column, ColumnType
from ._errors import InvalidOperation, SelectionError, UnknownColumn
from ._result import EvalResult, SelectionResult

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ._dataset import Dataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """Column metadata a selection predicate is evaluated on.

    Attributes:
        name: The column name.
        type: The column's semantic type.
        position: Zero-based position in the dataset.
        column: The column itself.

    """

    name: str
    type: ColumnType
    position: int
    column: Column

    @classmethod
    def of(cls, dataset: Dataset, name: str) -> ColumnInfo:
        column = dataset.column(name)
        return cls(name=name, type=column.type, position=dataset.position(name), column=column)

    @property
    def values(self) -> tuple[Any, ...]:
        return self.column.values

    @property
    def n_missing(self) -> int:
        return sum(1 for v in self.values if v is None)

    @property
    def n_distinct(self) -> int:
        return len({v for v in self.values if v is not None})

    @property
    def minimum(self) -> Any:
        present = [v for v in self.values if v is not None]
        if not present or self.type is ColumnType.BOOLEAN:
            return None
        return min(present, key=order_key)

    @property
    def maximum(self) -> Any:
        present = [v for v in self.values if v is not None]
        if not present or self.type is ColumnType.BOOLEAN:
            return None
        return max(present, key=order_key)

    @property
    def mean(self) -> float | None:
        present = [v for v in self.values if v is not None]
        if not present or self.type is not ColumnType.NUMERIC:
            return None
        return statistics.fmean(present)


class _Failed(Exception):  # noqa: N818
    def __init__(self, error: SelectionError) -> None:
        super().__init__(error.message)
        self.error = error


class SelectionSpec:
    """Base class of selections. Combine with ``|``, ``&`` and ``-``."""

    __slots__ = ()

    def resolve(self, dataset: Dataset) -> list[str]:
        """Resolve to column names.

        Raises:
            _Failed: When a strict selection names a missing column.

        """
        raise NotImplementedError

    def __or__(self, other: SelectionSpec) -> Union:
        return Union((self, other))

    def __and__(self, other: SelectionSpec) -> Intersect:
        return Intersect(self, other)

    def __sub__(self, other: SelectionSpec) -> Difference:
        return Difference(self, other)


@dataclass(frozen=True, slots=True)
class Names(SelectionSpec):
    """Explicit column names, in requested order.

    Strict selections fail on the first missing name; lenient selections
    drop missing names and keep the remaining ones in requested order.
    """

    names: tuple[str, ...]
    strict: bool = True

    def resolve(self, dataset: Dataset) -> list[str]:
        selected: list[str] = []
        for name in self.names:
            if not dataset.has_column(name):
                if self.strict:
                    raise _Failed(SelectionError(UnknownColumn(name)))
                logger.debug("Dropping missing column '%s' from lenient selection", name)
                continue
            if name not in selected:
                selected.append(name)
        return selected


@dataclass(frozen=True, slots=True)
class Where(SelectionSpec):
    """Columns whose metadata satisfies a predicate, in dataset order."""

    predicate: Callable[[ColumnInfo], bool]
    description: str = "where(...)"

    def resolve(self, dataset: Dataset) -> list[str]:
        return [name for name in dataset.column_names if self.predicate(ColumnInfo.of(dataset, name))]

    def __str__(self) -> str:
        return self.description


@dataclass(frozen=True, slots=True)
class Union(SelectionSpec):
    """Columns selected by any part, in order of first appearance."""

    parts: tuple[SelectionSpec, ...]

    def resolve(self, dataset: Dataset) -> list[str]:
        selected: list[str] = []
        for part in self.parts:
            selected.extend(name for name in part.resolve(dataset) if name not in selected)
        return selected

    def __or__(self, other: SelectionSpec) -> Union:
        return Union((*self.parts, other))


@dataclass(frozen=True, slots=True)
class Intersect(SelectionSpec):
    """Columns selected by both sides, in the left side's order."""

    left: SelectionSpec
    right: SelectionSpec

    def resolve(self, dataset: Dataset) -> list[str]:
        right = set(self.right.resolve(dataset))
        return [name for name in self.left.resolve(dataset) if name in right]


@dataclass(frozen=True, slots=True)
class Difference(SelectionSpec):
    """Columns selected by the left side but not the right, in the left side's order."""

    left: SelectionSpec
    right: SelectionSpec

    def resolve(self, dataset: Dataset) -> list[str]:
        right = set(self.right.resolve(dataset))
        return [name for name in self.left.resolve(dataset) if name not in right]


def names(*column_names: str, strict: bool = True) -> Names:
    return Names(tuple(column_names), strict=strict)


def all_of(column_names: Sequence[str]) -> Names:
    """Every listed column must exist."""
    return Names(tuple(column_names), strict=True)


def any_of(column_names: Sequence[str]) -> Names:
    """Listed columns that exist; missing ones are dropped."""
    return Names(tuple(column_names), strict=False)


def where(predicate: Callable[[ColumnInfo], bool]) -> Where:
    return Where(predicate)


def everything() -> Where:
    return Where(lambda _info: True, "everything()")


def of_type(column_type: ColumnType) -> Where:
    return Where(lambda info: info.type is column_type, f"is_{column_type}()")


def is_numeric() -> Where:
    return of_type(ColumnType.NUMERIC)


def is_text() -> Where:
    return of_type(ColumnType.TEXT)


def is_boolean() -> Where:
    return of_type(ColumnType.BOOLEAN)


def is_categorical() -> Where:
    return of_type(ColumnType.CATEGORICAL)


def starts_with(prefix: str) -> Where:
    return Where(lambda info: info.name.startswith(prefix), f"starts_with({prefix!r})")


def ends_with(suffix: str) -> Where:
    return Where(lambda info: info.name.endswith(suffix), f"ends_with({suffix!r})")


def contains(part: str) -> Where:
    return Where(lambda info: part in info.name, f"contains({part!r})")


def matches(pattern: str) -> Where:
    regex = re.compile(pattern)
    return Where(lambda info: regex.search(info.name) is not None, f"matches({pattern!r})")


def select(spec: SelectionSpec, dataset: Dataset) -> SelectionResult:
    """Resolve a selection into an ordered tuple of column names.

    Caller-supplied predicates that raise propagate their exception.

    Returns:
        SelectionResult with the names, or with a ``SelectionError`` naming
        the first missing column of a strict selection.

    """
    try:
        selected = spec.resolve(dataset)
    except _Failed as e:
        logger.debug("Selection failed: %s", e.error.message)
        return SelectionResult(error=e.error)
    logger.debug("Selected columns %s", selected)
    return SelectionResult(columns=tuple(selected))


def select_columns(spec: SelectionSpec, dataset: Dataset) -> EvalResult:
    """Project a dataset onto a selection, keeping the selection's order."""
    result = select(spec, dataset)
    if result.error is not None:
        return EvalResult(error=result.error)
    return EvalResult(dataset.project(result.columns))


def transform_columns(
    spec: SelectionSpec,
    dataset: Dataset,
    fn: Callable[[tuple[Any, ...]], Sequence[Any]],
    names: str | None = None,
) -> EvalResult:
    """Apply the same transform to every selected column.

    ``fn`` receives one column's values and is called once per selected
    column, in selection order.

    Args:
        spec: The columns to transform.
        dataset: The input dataset; left untouched.
        fn: Maps a column's values to new values of the same length.
        names: Optional template such as ``"{col}_scaled"``. Without it the
            selected columns are replaced in place; with it the results are
            added as new columns.

    Returns:
        EvalResult with the new Dataset, or with a ``SelectionError`` or an
        ``InvalidOperation`` for a transform returning the wrong length or
        unsupported values.

    """
    result = select(spec, dataset)
    if result.error is not None:
        return EvalResult(error=result.error)

    transformed = dataset
    for name in result.columns:
        values = tuple(fn(dataset.column(name).values))
        if len(values) != dataset.n_rows:
            return EvalResult(
                error=InvalidOperation(
                    operation=f"transform of '{name}'",
                    detail=f"returned {len(values)} values for {dataset.n_rows} rows",
                ),
            )
        target = names.format(col=name) if names is not None else name
        try:
            column = Column.of(target, values)
        except (TypeError, ValueError) as e:
            return EvalResult(error=InvalidOperation(operation=f"transform of '{name}'", detail=str(e)))
        logger.debug("Transformed column '%s' into '%s'", name, target)
        transformed = transformed.with_column(column)
    return EvalResult(transformed)
