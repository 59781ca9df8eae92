"""Symbol resolution against dataset columns and the ambient scope."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ._context import kind_of
from ._errors import TypeMismatch, UnknownColumn, UnknownScopeVariable, UnknownSymbol
from ._expr import ResolutionMode
from ._result import EvalResult

if TYPE_CHECKING:
    from ._context import ResolutionContext

logger = logging.getLogger(__name__)


def resolve(symbol: Any, context: ResolutionContext, mode: ResolutionMode = ResolutionMode.DEFAULT) -> EvalResult:
    """Resolve a symbol to a column value or a scope value.

    In ``DEFAULT`` mode a column always wins over a scope variable of the same
    name. A caller that needs the scope variable must ask for ``SCOPE_ONLY``.

    Args:
        symbol: The symbol name. In ``COLUMN_BY_KEY`` mode, the runtime value
            used as a column name.
        context: The dataset view and scope to resolve against.
        mode: Where to look the symbol up.

    Returns:
        EvalResult with the resolved value, or with ``UnknownSymbol``,
        ``UnknownColumn``, ``UnknownScopeVariable`` or ``TypeMismatch``.

    """
    dataset = context.dataset
    scope = context.scope

    match mode:
        case ResolutionMode.DEFAULT:
            if dataset.has_column(symbol):
                logger.debug("Resolved '%s' to a column", symbol)
                return EvalResult(context.column_value(symbol))
            if symbol in scope:
                logger.debug("Resolved '%s' to a scope variable", symbol)
                return EvalResult(scope[symbol])
            return EvalResult(error=UnknownSymbol(symbol))

        case ResolutionMode.COLUMN_ONLY:
            if dataset.has_column(symbol):
                return EvalResult(context.column_value(symbol))
            return EvalResult(error=UnknownColumn(symbol))

        case ResolutionMode.SCOPE_ONLY:
            if symbol in scope:
                return EvalResult(scope[symbol])
            return EvalResult(error=UnknownScopeVariable(symbol))

        case ResolutionMode.COLUMN_BY_KEY:
            if not isinstance(symbol, str):
                return EvalResult(
                    error=TypeMismatch(
                        operation="column lookup",
                        kinds=(kind_of(symbol),),
                        detail="column key must be text",
                    ),
                )
            if dataset.has_column(symbol):
                logger.debug("Resolved computed key '%s' to a column", symbol)
                return EvalResult(context.column_value(symbol))
            return EvalResult(error=UnknownColumn(symbol))

    msg = f"Unknown resolution mode: {mode}"
    raise ValueError(msg)
