"""Result containers pairing a value with an optional error value."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ._errors import EvalError, EvaluationFailed, SelectionError

if TYPE_CHECKING:
    from ._dataset import Dataset


@dataclass(frozen=True, slots=True)
class EvalResult:
    """Outcome of resolving or evaluating an expression.

    Attributes:
        value: The computed value. Meaningless when ``error`` is set.
        error: The error value, or None on success.

    """

    value: Any = None
    error: EvalError | None = None

    @property
    def success(self) -> bool:
        """Check if evaluation completed without error."""
        return self.error is None

    def unwrap(self) -> Any:
        """Get the value.

        Raises:
            EvaluationFailed: If the result carries an error.

        """
        if self.error is not None:
            raise EvaluationFailed(self.error)
        return self.value


@dataclass(frozen=True, slots=True)
class FilterResult:
    """Outcome of filtering the rows of a dataset.

    Attributes:
        dataset: The kept rows, or None on failure.
        error: The error value, or None on success.
        kept: Indices of the kept rows in the input dataset.

    """

    dataset: Dataset | None = None
    error: EvalError | None = None
    kept: tuple[int, ...] = ()

    @property
    def success(self) -> bool:
        return self.error is None

    def unwrap(self) -> Dataset:
        if self.error is not None:
            raise EvaluationFailed(self.error)
        assert self.dataset is not None
        return self.dataset


@dataclass(frozen=True, slots=True)
class SelectionResult:
    """Outcome of resolving a selection into column names."""

    columns: tuple[str, ...] = ()
    error: SelectionError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def unwrap(self) -> tuple[str, ...]:
        if self.error is not None:
            raise EvaluationFailed(self.error)
        return self.columns
