"""Linear-Gaussian factors in Jacobian (measurement) form."""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import MissingKeyError
from ..core.keys import Key, KeyFormatter, default_key_formatter
from .noise import NoiseModel

Term = Tuple[Key, np.ndarray]


def format_matrix(name: str, matrix: np.ndarray) -> str:
    """Render a matrix as ``name = [ rows ]`` with one row per line."""
    rows = [", ".join(f"{v:.6g}" for v in row) for row in np.atleast_2d(matrix)]
    return f"{name} = [\n\t" + ";\n\t".join(rows) + "\n]"


def format_vector(name: str, vector: np.ndarray) -> str:
    return f"{name} = [ " + " ".join(f"{v:.6g}" for v in vector) + " ]"


def as_terms(terms) -> List[Term]:
    """Normalize a mapping or sequence of (key, matrix) pairs."""
    items = terms.items() if isinstance(terms, Mapping) else terms
    out = []
    for key, matrix in items:
        matrix = np.asarray(matrix, dtype=float)
        if matrix.ndim == 1:
            matrix = matrix.reshape(-1, 1)
        if matrix.ndim != 2:
            raise ValueError(f"Block for {key!r} must be 2D, got shape {matrix.shape}")
        out.append((key, matrix))
    return out


class JacobianFactor:
    """Gaussian factor with error 0.5 * || Sigma^{-1/2} (sum_j A_j x_j - b) ||^2.

    A factor with no terms is a constant whose error is 0.5 * ||b||^2 (whitened).

    Examples:
        >>> f = JacobianFactor([("x1", np.eye(2))], np.zeros(2))
        >>> f.error({"x1": np.array([1.0, 1.0])})
        1.0
    """

    def __init__(
        self,
        terms: Sequence[Term] | Mapping[Key, np.ndarray],
        b,
        model: Optional[NoiseModel] = None,
    ) -> None:
        """Initialize a Jacobian factor.

        Args:
            terms: (key, A_j) pairs; every A_j has one row per measurement row.
            b: Right-hand side, shape (rows,).
            model: Optional noise model of dimension ``rows``. None means unit noise.

        Raises:
            ValueError: On inconsistent shapes or duplicate keys.
        """
        terms = as_terms(terms)
        b = np.atleast_1d(np.asarray(b, dtype=float)).reshape(-1)
        rows = b.shape[0]
        keys = [key for key, _ in terms]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate keys in factor: {keys}")
        for key, matrix in terms:
            if matrix.shape[0] != rows:
                raise ValueError(
                    f"Block for {key!r} has {matrix.shape[0]} rows, expected {rows}"
                )
        if model is not None and model.dim != rows:
            raise ValueError(f"Noise model dim {model.dim} != factor rows {rows}")
        self._keys: List[Key] = keys
        self._blocks: List[np.ndarray] = [matrix for _, matrix in terms]
        self.b = b
        self.model = model

    @property
    def keys(self) -> List[Key]:
        return list(self._keys)

    @property
    def rows(self) -> int:
        return int(self.b.shape[0])

    def block(self, key: Key) -> np.ndarray:
        return self._blocks[self._keys.index(key)]

    def dims(self) -> dict:
        """Mapping from key to its variable dimension."""
        return {key: matrix.shape[1] for key, matrix in zip(self._keys, self._blocks)}

    def terms(self) -> List[Term]:
        return list(zip(self._keys, self._blocks))

    def is_constant(self) -> bool:
        return not self._keys

    def whitened(self) -> "JacobianFactor":
        """Equivalent factor with the noise model folded into A and b."""
        if self.model is None:
            return self
        return JacobianFactor(
            [(key, self.model.whiten(matrix)) for key, matrix in self.terms()],
            self.model.whiten(self.b),
        )

    def residual(self, values: Mapping[Key, np.ndarray]) -> np.ndarray:
        """Unwhitened residual sum_j A_j x_j - b."""
        r = -self.b.copy()
        for key, matrix in self.terms():
            if key not in values:
                raise MissingKeyError(key, "Gaussian factor")
            r += matrix @ np.asarray(values[key], dtype=float)
        return r

    def error(self, values: Mapping[Key, np.ndarray]) -> float:
        r = self.residual(values)
        if self.model is not None:
            r = self.model.whiten(r)
        return 0.5 * float(r @ r)

    def equals(self, other: "JacobianFactor", tol: float = 1e-9) -> bool:
        if not isinstance(other, JacobianFactor) or self._keys != other._keys:
            return False
        if (self.model is None) != (other.model is None):
            return False
        if self.model is not None and not self.model.equals(other.model, tol):
            return False
        if self.b.shape != other.b.shape or not np.allclose(self.b, other.b, atol=tol, rtol=0.0):
            return False
        return all(
            a.shape == c.shape and np.allclose(a, c, atol=tol, rtol=0.0)
            for a, c in zip(self._blocks, other._blocks)
        )

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        lines = [format_matrix(f"  A[{formatter(key)}]", matrix) for key, matrix in self.terms()]
        lines.append("  " + format_vector("b", self.b))
        if self.model is None:
            lines.append("  No noise model")
        else:
            lines.append("  Noise model: " + self.model.to_string())
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"JacobianFactor(keys={self._keys}, rows={self.rows})"
