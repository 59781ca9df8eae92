"""Tests for column selection in datamask._selector."""

from enum import Enum, StrEnum

import pytest

import datamask as dm


class Color(StrEnum):
    RED = "red"
    BLUE = "blue"


class Shade(Enum):
    DARK = 1
    LIGHT = 2


@pytest.fixture
def data() -> dm.Dataset:
    return dm.Dataset.from_columns(
        {
            "x": [1, 2, 3],
            "y": [4.0, None, 6.0],
            "name": ["a", "b", "c"],
            "flag": [True, False, True],
            "color": [Color.RED, Color.BLUE, None],
            "x_scaled": [0.1, 0.2, 0.3],
        },
    )


class TestNames:
    def test_requested_order(self, data: dm.Dataset) -> None:
        assert dm.select(dm.names("name", "x"), data).columns == ("name", "x")

    def test_strict_missing_column(self, data: dm.Dataset) -> None:
        result = dm.select(dm.all_of(["x", "nope", "other"]), data)

        assert not result.success
        assert result.error == dm.SelectionError(dm.UnknownColumn("nope"))
        assert result.error.name == "nope"

    def test_lenient_drops_missing(self, data: dm.Dataset) -> None:
        assert dm.select(dm.any_of(["nope", "y", "x"]), data).columns == ("y", "x")

    def test_lenient_nothing_matches(self, data: dm.Dataset) -> None:
        result = dm.select(dm.any_of(["nope"]), data)

        assert result.success
        assert result.columns == ()

    def test_duplicates_collapse(self, data: dm.Dataset) -> None:
        assert dm.select(dm.names("x", "y", "x"), data).columns == ("x", "y")

    def test_unwrap_failure(self, data: dm.Dataset) -> None:
        with pytest.raises(dm.EvaluationFailed, match="nope"):
            dm.select(dm.names("nope"), data).unwrap()


class TestPredicates:
    def test_everything(self, data: dm.Dataset) -> None:
        assert dm.select(dm.everything(), data).columns == data.column_names

    def test_types(self, data: dm.Dataset) -> None:
        assert dm.select(dm.is_numeric(), data).columns == ("x", "y", "x_scaled")
        assert dm.select(dm.is_text(), data).columns == ("name",)
        assert dm.select(dm.is_boolean(), data).columns == ("flag",)
        assert dm.select(dm.is_categorical(), data).columns == ("color",)

    def test_name_patterns(self, data: dm.Dataset) -> None:
        assert dm.select(dm.starts_with("x"), data).columns == ("x", "x_scaled")
        assert dm.select(dm.ends_with("scaled"), data).columns == ("x_scaled",)
        assert dm.select(dm.contains("am"), data).columns == ("name",)
        assert dm.select(dm.matches(r"^[xy]$"), data).columns == ("x", "y")

    def test_where_on_metadata(self, data: dm.Dataset) -> None:
        result = dm.select(dm.where(lambda info: info.n_missing > 0), data)
        assert result.columns == ("y", "color")

    def test_where_on_statistics(self, data: dm.Dataset) -> None:
        result = dm.select(dm.where(lambda info: (info.mean or 0) > 2), data)
        assert result.columns == ("y",)

    def test_predicate_exception_propagates(self, data: dm.Dataset) -> None:
        def boom(_info: dm.ColumnInfo) -> bool:
            msg = "predicate failed"
            raise RuntimeError(msg)

        with pytest.raises(RuntimeError, match="predicate failed"):
            dm.select(dm.where(boom), data)


class TestColumnInfo:
    def test_statistics(self, data: dm.Dataset) -> None:
        info = dm.ColumnInfo.of(data, "y")

        assert info.position == 1
        assert info.type is dm.ColumnType.NUMERIC
        assert info.n_missing == 1
        assert info.n_distinct == 2
        assert info.minimum == 4.0
        assert info.maximum == 6.0
        assert info.mean == 5.0

    def test_non_numeric(self, data: dm.Dataset) -> None:
        info = dm.ColumnInfo.of(data, "flag")

        assert info.mean is None
        assert info.minimum is None
        assert info.n_distinct == 2

    def test_categories_order_by_definition(self, data: dm.Dataset) -> None:
        info = dm.ColumnInfo.of(data, "color")

        assert info.minimum is Color.RED
        assert info.maximum is Color.BLUE

    def test_plain_enum_categories(self) -> None:
        data = dm.Dataset.from_columns({"shade": [Shade.LIGHT, None, Shade.DARK]})
        info = dm.ColumnInfo.of(data, "shade")

        assert info.minimum is Shade.DARK
        assert info.maximum is Shade.LIGHT


class TestCombinators:
    def test_union_keeps_first_appearance(self, data: dm.Dataset) -> None:
        spec = dm.names("name") | dm.is_numeric() | dm.names("x")
        assert isinstance(spec, dm.Union)
        assert dm.select(spec, data).columns == ("name", "x", "y", "x_scaled")

    def test_intersect(self, data: dm.Dataset) -> None:
        assert dm.select(dm.is_numeric() & dm.starts_with("x"), data).columns == ("x", "x_scaled")

    def test_difference(self, data: dm.Dataset) -> None:
        assert dm.select(dm.everything() - dm.is_numeric(), data).columns == ("name", "flag", "color")

    def test_strict_failure_inside_combination(self, data: dm.Dataset) -> None:
        result = dm.select(dm.is_numeric() | dm.names("nope"), data)
        assert result.error == dm.SelectionError(dm.UnknownColumn("nope"))


class TestSelectColumns:
    def test_projection(self, data: dm.Dataset) -> None:
        projected = dm.select_columns(dm.names("name", "x"), data).unwrap()

        assert projected.column_names == ("name", "x")
        assert projected.n_rows == 3

    def test_failure(self, data: dm.Dataset) -> None:
        assert isinstance(dm.select_columns(dm.names("nope"), data).error, dm.SelectionError)


class TestTransformColumns:
    def test_replaces_in_place(self, data: dm.Dataset) -> None:
        result = dm.transform_columns(dm.names("x"), data, lambda values: [v * 10 for v in values])
        transformed = result.unwrap()

        assert transformed.column("x").values == (10, 20, 30)
        assert transformed.column_names == data.column_names
        assert data.column("x").values == (1, 2, 3)

    def test_each_column_once_in_order(self, data: dm.Dataset) -> None:
        seen: list[tuple] = []

        def record(values: tuple) -> tuple:
            seen.append(values)
            return values

        dm.transform_columns(dm.names("y", "x"), data, record)

        assert seen == [(4.0, None, 6.0), (1, 2, 3)]

    def test_names_template(self, data: dm.Dataset) -> None:
        result = dm.transform_columns(dm.names("x"), data, lambda values: [-v for v in values], names="{col}_neg")
        transformed = result.unwrap()

        assert transformed.column_names[-1] == "x_neg"
        assert transformed.column("x_neg").values == (-1, -2, -3)
        assert transformed.column("x").values == (1, 2, 3)

    def test_wrong_length(self, data: dm.Dataset) -> None:
        result = dm.transform_columns(dm.names("x"), data, lambda values: values[:1])
        assert isinstance(result.error, dm.InvalidOperation)

    def test_unsupported_values(self, data: dm.Dataset) -> None:
        result = dm.transform_columns(dm.names("x"), data, lambda values: [[v] for v in values])
        assert isinstance(result.error, dm.InvalidOperation)

    def test_selection_failure(self, data: dm.Dataset) -> None:
        result = dm.transform_columns(dm.names("nope"), data, lambda values: values)
        assert result.error == dm.SelectionError(dm.UnknownColumn("nope"))
