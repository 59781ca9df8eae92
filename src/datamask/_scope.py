"""Ambient scope: caller-supplied variables kept apart from dataset columns."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any


class Scope(Mapping[str, Any]):
    """Read-only mapping of caller variables.

    The caller's mapping is copied on construction, so later changes to it
    are not observed by an evaluation holding this scope.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        merged = {**(data or {}), **kwargs}
        for name in merged:
            if not isinstance(name, str):
                msg = f"Scope names must be strings. Got: {name!r}"
                raise TypeError(msg)
        self._data: Mapping[str, Any] = MappingProxyType(merged)

    def __getitem__(self, name: str) -> Any:
        return self._data[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Scope({dict(self._data)!r})"

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "_data" and not hasattr(self, "_data"):
            object.__setattr__(self, name, value)
            return
        msg = "Scope is immutable"
        raise AttributeError(msg)

    def with_values(self, **kwargs: Any) -> Scope:
        """Return a new scope with the given variables added or replaced."""
        return Scope(self._data, **kwargs)
