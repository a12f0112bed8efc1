"""Exception types raised by hybrid inference operations."""

from __future__ import annotations


class HybridError(Exception):
    """Base class for all hybridbn errors."""


class MissingKeyError(HybridError, KeyError):
    """A lookup needs a key that the supplied assignment or values lack."""

    def __init__(self, key, context: str = "") -> None:
        self.key = key
        message = f"Missing value for key {key!r}"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class PrunedBranchError(HybridError, LookupError):
    """Navigation reached a null (pruned) leaf."""


class WrongVariantError(HybridError, TypeError):
    """A downcast was requested on a node holding a different variant."""


class MissingMeasurementError(HybridError, KeyError):
    """A conditional's frontal variables are only partially measured."""

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class IllFormedNodeError(HybridError, ValueError):
    """A node was constructed with an inconsistent key set or payload."""


class TopologicalOrderError(HybridError, ValueError):
    """Appending a conditional would break the Bayes net ordering."""


class IndeterminantSystemError(HybridError, ValueError):
    """Gaussian elimination found fewer constraints than unknowns."""
