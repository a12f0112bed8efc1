"""Value containers for continuous, discrete and hybrid assignments.

VectorValues maps continuous keys to 1-D float arrays, DiscreteValues maps
discrete keys to integer indices, and HybridValues pairs the two.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

import numpy as np

from .errors import MissingKeyError
from .keys import Key, KeyFormatter, default_key_formatter


def _as_vector(value) -> np.ndarray:
    vec = np.atleast_1d(np.asarray(value, dtype=float))
    if vec.ndim != 1:
        raise ValueError(f"Expected a 1D vector, got shape {vec.shape}")
    return vec


class VectorValues(dict):
    """Mapping from continuous keys to real vectors."""

    def __init__(self, items: Optional[Mapping[Key, object]] = None) -> None:
        super().__init__()
        if items:
            for key, value in items.items():
                self[key] = value

    def __setitem__(self, key: Key, value) -> None:
        super().__setitem__(key, _as_vector(value))

    def insert(self, key: Key, value) -> "VectorValues":
        """Insert a new key.

        Raises:
            ValueError: If the key is already present.
        """
        if key in self:
            raise ValueError(f"Key {key!r} already present in VectorValues")
        self[key] = value
        return self

    def update(self, other=(), **kwargs) -> None:
        for key, value in dict(other, **kwargs).items():
            self[key] = value

    def at(self, key: Key) -> np.ndarray:
        """Return the vector for ``key``, raising MissingKeyError if absent."""
        try:
            return self[key]
        except KeyError:
            raise MissingKeyError(key, "continuous value") from None

    def vector(self, keys: Iterable[Key]) -> np.ndarray:
        """Concatenate the vectors of ``keys`` in the given order."""
        parts = [self.at(k) for k in keys]
        if not parts:
            return np.zeros(0)
        return np.concatenate(parts)

    def dim(self) -> int:
        """Total dimension of all vectors."""
        return int(sum(v.shape[0] for v in self.values()))

    def copy(self) -> "VectorValues":
        return VectorValues(self)

    def equals(self, other: "VectorValues", tol: float = 1e-9) -> bool:
        if set(self.keys()) != set(other.keys()):
            return False
        for key, value in self.items():
            other_value = other[key]
            if value.shape != other_value.shape:
                return False
            if not np.allclose(value, other_value, atol=tol, rtol=0.0):
                return False
        return True

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        lines = [f"  {formatter(k)}: {np.array2string(v, precision=6)}" for k, v in self.items()]
        return "VectorValues: " + str(len(self)) + " elements\n" + "\n".join(lines)

    def __repr__(self) -> str:
        return f"VectorValues({dict.__repr__(self)})"


class DiscreteValues(dict):
    """Mapping from discrete keys to selected value indices."""

    def __setitem__(self, key: Key, value) -> None:
        value = int(value)
        if value < 0:
            raise ValueError(f"Discrete value for {key!r} must be >= 0, got {value}")
        super().__setitem__(key, value)

    def __init__(self, items: Optional[Mapping[Key, int]] = None) -> None:
        super().__init__()
        if items:
            for key, value in items.items():
                self[key] = value

    def update(self, other=(), **kwargs) -> None:
        for key, value in dict(other, **kwargs).items():
            self[key] = value

    def at(self, key: Key) -> int:
        try:
            return self[key]
        except KeyError:
            raise MissingKeyError(key, "discrete value") from None

    def copy(self) -> "DiscreteValues":
        return DiscreteValues(self)

    def __repr__(self) -> str:
        return f"DiscreteValues({dict.__repr__(self)})"


@dataclass
class HybridValues:
    """A continuous assignment paired with a discrete assignment.

    Attributes:
        continuous: Values of continuous variables.
        discrete: Values of discrete variables.
    """

    continuous: VectorValues = field(default_factory=VectorValues)
    discrete: DiscreteValues = field(default_factory=DiscreteValues)

    def __post_init__(self) -> None:
        if not isinstance(self.continuous, VectorValues):
            self.continuous = VectorValues(self.continuous)
        if not isinstance(self.discrete, DiscreteValues):
            self.discrete = DiscreteValues(self.discrete)

    def at(self, key: Key) -> np.ndarray:
        return self.continuous.at(key)

    def at_discrete(self, key: Key) -> int:
        return self.discrete.at(key)

    def insert(self, key: Key, value) -> "HybridValues":
        """Insert a continuous vector (array-like) or a discrete index (int)."""
        if isinstance(value, (int, np.integer)):
            if key in self.discrete:
                raise ValueError(f"Key {key!r} already present in discrete values")
            self.discrete[key] = value
        else:
            self.continuous.insert(key, value)
        return self

    def update(self, other: "HybridValues") -> None:
        """Overwrite with all entries of ``other``."""
        self.continuous.update(other.continuous)
        self.discrete.update(other.discrete)

    def copy(self) -> "HybridValues":
        return HybridValues(self.continuous.copy(), self.discrete.copy())

    def equals(self, other: "HybridValues", tol: float = 1e-9) -> bool:
        return self.continuous.equals(other.continuous, tol) and dict(self.discrete) == dict(
            other.discrete
        )


def as_vector_values(values: Optional[Mapping[Key, object]]) -> VectorValues:
    """Coerce a plain mapping into VectorValues."""
    if isinstance(values, VectorValues):
        return values
    return VectorValues(values or {})
