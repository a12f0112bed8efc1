"""Process-wide switch for the extra consistency checks run by queries."""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

_DEBUG_ENV_VAR = "HYBRIDBN_DEBUG"
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in _TRUE_VALUES


_debug_enabled: bool = _env_flag(_DEBUG_ENV_VAR)


def is_debug_enabled() -> bool:
    """
    Whether debug mode is on.

    With debug mode on, elimination checks that the discrete posterior is
    normalized and prune additionally checks the kept-leaf budget. The
    initial value comes from the HYBRIDBN_DEBUG environment variable.

    Returns
    -------
    bool
        Current setting.
    """
    return _debug_enabled


def set_debug_enabled(enabled: bool) -> None:
    """
    Turn debug mode on or off for the whole process.

    Parameters
    ----------
    enabled:
        New setting.
    """
    global _debug_enabled
    _debug_enabled = bool(enabled)


@contextmanager
def debug_context(enabled: bool = True) -> Iterator[None]:
    """
    Temporarily override debug mode, restoring the previous setting on exit.

    Example
    -------
    >>> with debug_context(True):
    ...     pruned = bayes_net.prune(4)
    """
    previous = is_debug_enabled()
    set_debug_enabled(enabled)
    try:
        yield
    finally:
        set_debug_enabled(previous)
