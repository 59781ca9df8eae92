"""Immutable tabular data: named, typed, equal-length columns."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum, StrEnum, auto
from typing import TYPE_CHECKING, Any

from pydantic_core import core_schema

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence

    from pydantic import GetCoreSchemaHandler
    from pydantic_core import CoreSchema

logger = logging.getLogger(__name__)

# Written for missing cells where the file format has no null
MISSING_TEXT = "NA"


def _missing_marker_to_none(value: Any) -> Any:
    if (isinstance(value, str) and value == MISSING_TEXT) or (isinstance(value, float) and math.isnan(value)):
        return None
    return value


class ColumnType(StrEnum):
    """The semantic type of a dataset column."""

    NUMERIC = auto()
    TEXT = auto()
    BOOLEAN = auto()
    CATEGORICAL = auto()


def value_type(value: Any) -> ColumnType | None:
    """Classify a single non-missing value, or return None if it fits no column type."""
    # bool before int: booleans are never numeric
    if isinstance(value, bool):
        return ColumnType.BOOLEAN
    if isinstance(value, (int, float)):
        return ColumnType.NUMERIC
    # Enum before str: StrEnum members are also str
    if isinstance(value, Enum):
        return ColumnType.CATEGORICAL
    if isinstance(value, str):
        return ColumnType.TEXT
    return None


def infer_column_type(values: Iterable[Any]) -> ColumnType:
    """Infer the column type from the first non-missing value.

    An all-missing column is text.
    """
    for value in values:
        if value is None:
            continue
        inferred = value_type(value)
        if inferred is None:
            msg = f"Unsupported column value {value!r} of type {type(value).__name__}"
            raise TypeError(msg)
        return inferred
    return ColumnType.TEXT


@dataclass(frozen=True, slots=True)
class Column:
    """A named, typed, ordered sequence of values, one per row.

    Attributes:
        name: The column name.
        type: The semantic type every non-missing value conforms to.
        values: The values; None marks a missing value.

    """

    name: str
    type: ColumnType
    values: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            msg = f"Column name must be a non-empty string. Got: {self.name!r}"
            raise ValueError(msg)
        categories: type[Enum] | None = None
        for i, value in enumerate(self.values):
            if value is None:
                continue
            if value_type(value) is not self.type:
                msg = f"Column '{self.name}' is {self.type} but row {i} holds {value!r}"
                raise TypeError(msg)
            if self.type is ColumnType.CATEGORICAL:
                if categories is None:
                    categories = type(value)
                elif type(value) is not categories:
                    msg = f"Column '{self.name}' mixes categories {categories.__name__} and {type(value).__name__}"
                    raise TypeError(msg)

    @classmethod
    def of(cls, name: str, values: Iterable[Any], type: ColumnType | None = None) -> Column:  # noqa: A002
        """Build a column, inferring its type when not given."""
        values = tuple(values)
        return cls(name=name, type=type or infer_column_type(values), values=values)

    def __len__(self) -> int:
        return len(self.values)

    @property
    def categories(self) -> type[Enum] | None:
        """The enum type of a categorical column, or None."""
        if self.type is not ColumnType.CATEGORICAL:
            return None
        return next((type(v) for v in self.values if v is not None), None)


@dataclass(frozen=True, slots=True)
class Dataset:
    """An ordered collection of uniquely named columns of equal length.

    Datasets are immutable: every derivation returns a new Dataset and
    never touches the columns of the original.
    """

    columns: tuple[Column, ...] = ()
    _index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: dict[str, int] = {}
        for position, column in enumerate(self.columns):
            if column.name in index:
                msg = f"Duplicate column name: '{column.name}'"
                raise ValueError(msg)
            index[column.name] = position

        lengths = {len(column) for column in self.columns}
        if len(lengths) > 1:
            detail = ", ".join(f"{c.name}={len(c)}" for c in self.columns)
            msg = f"All columns must have the same length. Got: {detail}"
            raise ValueError(msg)

        object.__setattr__(self, "_index", index)

    @classmethod
    def from_columns(
        cls,
        data: Mapping[str, Iterable[Any]],
        types: Mapping[str, ColumnType] | None = None,
    ) -> Dataset:
        """Build a dataset from a mapping of column name to values.

        Args:
            data: Column name to values, in column order.
            types: Optional declared types; other columns are inferred.

        Returns:
            The new Dataset.

        """
        types = types or {}
        unknown = set(types) - set(data)
        if unknown:
            msg = f"Types declared for unknown columns: {sorted(unknown)}"
            raise ValueError(msg)
        return cls(tuple(Column.of(name, values, types.get(name)) for name, values in data.items()))

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> Dataset:
        """Build a dataset from row mappings; the first record fixes the column order."""
        records = list(records)
        if not records:
            return cls()
        names = list(records[0])
        for i, record in enumerate(records):
            if list(record) != names:
                msg = f"Record {i} has columns {list(record)}, expected {names}"
                raise ValueError(msg)
        return cls.from_columns({name: [record[name] for record in records] for name in names})

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def n_rows(self) -> int:
        return len(self.columns[0]) if self.columns else 0

    def __len__(self) -> int:
        return self.n_rows

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def has_column(self, name: str) -> bool:
        return name in self._index

    def column(self, name: str) -> Column:
        """Get a column by name.

        Raises:
            KeyError: If the dataset has no such column.

        """
        return self.columns[self._index[name]]

    def position(self, name: str) -> int:
        return self._index[name]

    def row(self, i: int) -> dict[str, Any]:
        """Get row ``i`` as a mapping of column name to value."""
        if not 0 <= i < self.n_rows:
            msg = f"Row index {i} out of range for {self.n_rows} rows"
            raise IndexError(msg)
        return {column.name: column.values[i] for column in self.columns}

    def iter_rows(self) -> Iterator[dict[str, Any]]:
        for i in range(self.n_rows):
            yield self.row(i)

    def take(self, indices: Sequence[int]) -> Dataset:
        """Return a dataset holding only the given rows, in the given order."""
        return Dataset(
            tuple(
                Column(name=c.name, type=c.type, values=tuple(c.values[i] for i in indices))
                for c in self.columns
            ),
        )

    def project(self, names: Sequence[str]) -> Dataset:
        """Return a dataset holding only the named columns, in the given order."""
        return Dataset(tuple(self.column(name) for name in names))

    def with_column(self, column: Column) -> Dataset:
        """Replace the column of the same name in place, or append a new one."""
        if column.name in self._index:
            columns = list(self.columns)
            columns[self._index[column.name]] = column
            return Dataset(tuple(columns))
        return Dataset((*self.columns, column))

    def to_dict(self) -> dict[str, list[Any]]:
        return {column.name: list(column.values) for column in self.columns}

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        """Generate a Pydantic core schema validating from ``dict[str, list]``."""

        def validate_from_dict(value: dict[str, list[Any]]) -> Dataset:
            # Construction errors surface as pydantic ValidationErrors
            try:
                columns = {name: [_missing_marker_to_none(v) for v in cells] for name, cells in value.items()}
                return cls.from_columns(columns)
            except TypeError as e:
                raise ValueError(str(e)) from e

        dict_schema = core_schema.dict_schema(
            keys_schema=core_schema.str_schema(),
            values_schema=core_schema.list_schema(core_schema.any_schema()),
        )

        python_schema = core_schema.union_schema(
            [
                core_schema.is_instance_schema(cls),
                core_schema.no_info_after_validator_function(validate_from_dict, dict_schema),
            ],
        )

        return core_schema.json_or_python_schema(
            json_schema=core_schema.no_info_after_validator_function(validate_from_dict, dict_schema),
            python_schema=python_schema,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda dataset: dataset.to_dict(),
                return_schema=dict_schema,
            ),
        )
