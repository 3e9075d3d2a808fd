from __future__ import annotations

from collections.abc import Mapping
from typing import Iterable, Tuple, Union

Prelude = Union[Mapping, Iterable[Tuple[str, str]]]


def _entries(prelude: Prelude):
    if prelude is None:
        return []
    if isinstance(prelude, Mapping):
        return list(prelude.items())
    return list(prelude)


def bindings(prelude: Prelude) -> str:
    """One `name <- literal` line per entry, in the caller's order."""
    return "".join(f"{name} <- {literal}\n" for name, literal in _entries(prelude))


def compose(prelude: Prelude, user_code: str) -> str:
    """Prepend the prelude bindings to the user's program.

    The user's text is appended untouched, so the composed program behaves
    exactly like the user program with the bindings pasted above it.
    """
    return bindings(prelude) + user_code


__all__ = ["bindings", "compose"]
