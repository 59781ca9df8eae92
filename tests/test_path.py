"""Tests for reference string parsing in datamask._path."""

import pytest

from datamask._path import AttributePart, ItemPart, RefPath


class TestRefPathParse:
    def test_root_only(self) -> None:
        assert RefPath.parse("min") == RefPath(root="min", parts=())

    def test_attribute(self) -> None:
        assert RefPath.parse("input.var") == RefPath(root="input", parts=(AttributePart("var"),))

    def test_nested_attributes(self) -> None:
        path = RefPath.parse("a.b.c")
        assert path.parts == (AttributePart("b"), AttributePart("c"))

    def test_string_item(self) -> None:
        assert RefPath.parse("limits[max]").parts == (ItemPart("max"),)

    def test_integer_item(self) -> None:
        assert RefPath.parse("choices[0]").parts == (ItemPart(0),)

    def test_mixed(self) -> None:
        path = RefPath.parse("input.ranges[1].low")
        assert path.root == "input"
        assert path.parts == (AttributePart("ranges"), ItemPart(1), AttributePart("low"))

    def test_whitespace_is_stripped(self) -> None:
        assert RefPath.parse("  x  ") == RefPath(root="x")

    @pytest.mark.parametrize("text", ["", ".var", "[0]", "a..b", "a[0", "a[0]x"])
    def test_malformed(self, text: str) -> None:
        with pytest.raises(ValueError):  # noqa: PT011
            RefPath.parse(text)


class TestRefPathStr:
    def test_round_trip_text(self) -> None:
        assert str(RefPath.parse("input.ranges[1].low")) == "input.ranges[1].low"
