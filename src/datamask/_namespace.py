"""Namespaced identifiers for reusable application components."""

from collections.abc import Callable

DEFAULT_SEPARATOR = "-"


def namespace(prefix: str | None, sep: str = DEFAULT_SEPARATOR) -> Callable[[str], str]:
    """Return a function that prefixes local identifiers with ``prefix``.

    Each component instance gets its own prefix, so two instances of the same
    component never produce colliding identifiers. ``namespace(None)`` returns
    identifiers unchanged. Namespaces nest by prefixing a prefix:

        >>> outer = namespace("dashboard")
        >>> inner = namespace(outer("filters"))
        >>> inner("min")
        'dashboard-filters-min'

    """
    if prefix is None:
        return lambda local_id: local_id
    if not prefix:
        msg = "Namespace prefix must be non-empty"
        raise ValueError(msg)

    def prefixed(local_id: str) -> str:
        if not local_id:
            return prefix
        return f"{prefix}{sep}{local_id}"

    return prefixed
