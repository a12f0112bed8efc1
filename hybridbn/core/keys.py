"""Key types shared by discrete and continuous variables."""

from __future__ import annotations

from typing import Callable, Hashable, NamedTuple

Key = Hashable
KeyFormatter = Callable[[Key], str]


class DiscreteKey(NamedTuple):
    """A discrete variable: identifier plus number of values it can take."""

    key: Key
    cardinality: int


def default_key_formatter(key: Key) -> str:
    """Render a key with ``str``."""
    return str(key)


def symbol(char: str, index: int) -> str:
    """Build a symbolic key such as ``"x1"`` from a character and an index.

    Args:
        char: Variable family, e.g. ``"x"`` for poses, ``"m"`` for modes.
        index: Non-negative index within the family.

    Returns:
        The key string.

    Raises:
        ValueError: If ``char`` is not a single character or index < 0.
    """
    if len(char) != 1:
        raise ValueError(f"symbol char must be a single character, got {char!r}")
    if index < 0:
        raise ValueError(f"symbol index must be >= 0, got {index}")
    return f"{char}{index}"

