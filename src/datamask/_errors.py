"""Error values returned by resolution, evaluation and selection.

Errors are plain immutable values carried in results, never raised by the
evaluation functions themselves. Each one names the offending symbol, key or
operation so a caller can turn it into an actionable message.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EvalError:
    """Base class of all error values."""

    @property
    def message(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class UnknownSymbol(EvalError):
    """A default-mode symbol is neither a column nor a scope variable."""

    name: str

    @property
    def message(self) -> str:
        return f"Unknown symbol '{self.name}': not a column of the dataset nor a scope variable"


@dataclass(frozen=True, slots=True)
class UnknownColumn(EvalError):
    """A column lookup (literal or computed key) found no such column."""

    name: str

    @property
    def message(self) -> str:
        return f"Unknown column '{self.name}'"


@dataclass(frozen=True, slots=True)
class UnknownScopeVariable(EvalError):
    """A scope-only lookup found no such variable."""

    name: str

    @property
    def message(self) -> str:
        return f"Unknown scope variable '{self.name}'"


@dataclass(frozen=True, slots=True)
class UnknownField(EvalError):
    """An attribute or item is missing on a value taken from the scope."""

    owner: str
    name: str

    @property
    def message(self) -> str:
        return f"'{self.owner}' has no field '{self.name}'"


@dataclass(frozen=True, slots=True)
class TypeMismatch(EvalError):
    """An operation received operands of incompatible kinds."""

    operation: str
    kinds: tuple[str, ...]
    detail: str = ""

    @property
    def message(self) -> str:
        msg = f"Type mismatch in '{self.operation}': got {', '.join(self.kinds)}"
        if self.detail:
            msg += f" ({self.detail})"
        return msg


@dataclass(frozen=True, slots=True)
class InvalidOperation(EvalError):
    """An operation or function call failed on well-typed operands."""

    operation: str
    detail: str

    @property
    def message(self) -> str:
        return f"Invalid operation '{self.operation}': {self.detail}"


@dataclass(frozen=True, slots=True)
class RowErrors(EvalError):
    """Row-wise evaluation failed on one or more rows."""

    errors: tuple[tuple[int, EvalError], ...]
    n_rows: int

    @property
    def row_indices(self) -> tuple[int, ...]:
        return tuple(i for i, _ in self.errors)

    @property
    def all_rows_failed(self) -> bool:
        return len(self.errors) == self.n_rows

    @property
    def message(self) -> str:
        shown = "; ".join(f"row {i}: {error.message}" for i, error in self.errors[:5])
        more = f"; and {len(self.errors) - 5} more" if len(self.errors) > 5 else ""
        return f"Evaluation failed on {len(self.errors)} of {self.n_rows} rows: {shown}{more}"


@dataclass(frozen=True, slots=True)
class SelectionError(EvalError):
    """A strict selection named a column the dataset does not have."""

    error: UnknownColumn

    @property
    def name(self) -> str:
        return self.error.name

    @property
    def message(self) -> str:
        return f"Selection failed: {self.error.message}"


class EvaluationFailed(Exception):  # noqa: N818
    """Raised by ``unwrap()`` on a failed result."""

    def __init__(self, error: EvalError) -> None:
        super().__init__(error.message)
        self.error = error
