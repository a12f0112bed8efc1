"""Linear-Gaussian conditionals p(x | parents) in square-root form."""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import MissingKeyError
from ..core.keys import Key, KeyFormatter, default_key_formatter
from ..core.rng import resolve_rng
from ..core.values import VectorValues
from .jacobian_factor import JacobianFactor, Term, as_terms, format_matrix, format_vector
from .noise import LOG_2PI, NoiseModel


class GaussianConditional:
    """Gaussian density N(x; R^{-1}(d - S p), (R^T Sigma^{-1} R)^{-1}).

    ``R`` is square and upper triangular over the frontal variables, ``S``
    holds one block per parent and ``Sigma`` comes from the noise model.

    Attributes:
        d: Right-hand side vector.
        model: Optional diagonal noise model; None means unit noise.
    """

    def __init__(
        self,
        frontals: Sequence[Term],
        d,
        parents: Sequence[Term] = (),
        model: Optional[NoiseModel] = None,
    ) -> None:
        """Initialize a conditional.

        Args:
            frontals: (key, R_j) column blocks of the square matrix R.
            d: Right-hand side, shape (n,).
            parents: (key, S_j) blocks for conditioning variables.
            model: Optional noise model of dimension n.

        Raises:
            ValueError: On non-square R, inconsistent rows, or a singular R.
        """
        frontal_terms = as_terms(frontals)
        parent_terms = as_terms(parents)
        if not frontal_terms:
            raise ValueError("GaussianConditional needs at least one frontal variable")
        d = np.atleast_1d(np.asarray(d, dtype=float)).reshape(-1)
        n = d.shape[0]
        R = np.hstack([matrix for _, matrix in frontal_terms])
        if R.shape != (n, n):
            raise ValueError(f"R must be {n}x{n}, got {R.shape}")
        for key, matrix in parent_terms:
            if matrix.shape[0] != n:
                raise ValueError(f"Parent block for {key!r} has {matrix.shape[0]} rows, expected {n}")
        keys = [key for key, _ in frontal_terms + parent_terms]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate keys in conditional: {keys}")
        if model is not None and model.dim != n:
            raise ValueError(f"Noise model dim {model.dim} != conditional dim {n}")
        if abs(np.linalg.det(R)) == 0.0:
            raise ValueError("R must be non-singular")
        self._frontals: List[Key] = [key for key, _ in frontal_terms]
        self._frontal_dims: List[int] = [matrix.shape[1] for _, matrix in frontal_terms]
        self._parents: List[Key] = [key for key, _ in parent_terms]
        self.R = R
        self.S: List[np.ndarray] = [matrix for _, matrix in parent_terms]
        self.d = d
        self.model = model

    @classmethod
    def from_mean_and_stddev(
        cls,
        key: Key,
        mean,
        sigma: float,
        parents: Sequence[Term] = (),
    ) -> "GaussianConditional":
        """p(x | parents) = N(x; mean + sum_j A_j p_j, sigma^2 I).

        Args:
            key: Frontal key.
            mean: Constant part of the mean.
            sigma: Isotropic standard deviation.
            parents: (key, A_j) pairs; stored internally as S_j = -A_j.
        """
        mean = np.atleast_1d(np.asarray(mean, dtype=float))
        n = mean.shape[0]
        return cls(
            [(key, np.eye(n))],
            mean,
            [(pkey, -matrix) for pkey, matrix in as_terms(parents)],
            NoiseModel.isotropic(n, sigma),
        )

    @property
    def frontals(self) -> List[Key]:
        return list(self._frontals)

    @property
    def parents(self) -> List[Key]:
        return list(self._parents)

    @property
    def keys(self) -> List[Key]:
        return self._frontals + self._parents

    @property
    def dim(self) -> int:
        return int(self.d.shape[0])

    def _whitened(self, A: np.ndarray) -> np.ndarray:
        return A if self.model is None else self.model.whiten(A)

    def _parent_vector(self, values: Mapping[Key, np.ndarray]) -> np.ndarray:
        total = np.zeros(self.dim)
        for key, S in zip(self._parents, self.S):
            if key not in values:
                raise MissingKeyError(key, "continuous parent")
            total += S @ np.asarray(values[key], dtype=float)
        return total

    def _frontal_vector(self, values: Mapping[Key, np.ndarray]) -> np.ndarray:
        parts = []
        for key in self._frontals:
            if key not in values:
                raise MissingKeyError(key, "continuous frontal")
            parts.append(np.atleast_1d(np.asarray(values[key], dtype=float)))
        return np.concatenate(parts)

    def error(self, values: Mapping[Key, np.ndarray]) -> float:
        """0.5 * || Sigma^{-1/2} (R x + S p - d) ||^2."""
        r = self.R @ self._frontal_vector(values) + self._parent_vector(values) - self.d
        r = self._whitened(r)
        return 0.5 * float(r @ r)

    def log_normalization_constant(self) -> float:
        """log |det(Sigma^{-1/2} R)| - n/2 log(2 pi)."""
        _, logdet = np.linalg.slogdet(self._whitened(self.R))
        return float(logdet) - 0.5 * self.dim * LOG_2PI

    def log_probability(self, values: Mapping[Key, np.ndarray]) -> float:
        return self.log_normalization_constant() - self.error(values)

    def evaluate(self, values: Mapping[Key, np.ndarray]) -> float:
        return float(np.exp(self.log_probability(values)))

    def _split(self, x: np.ndarray) -> VectorValues:
        result = VectorValues()
        offset = 0
        for key, dim in zip(self._frontals, self._frontal_dims):
            result[key] = x[offset:offset + dim]
            offset += dim
        return result

    def solve(self, parent_values: Optional[Mapping[Key, np.ndarray]] = None) -> VectorValues:
        """Conditional mean of the frontals given parent values."""
        rhs = self.d - self._parent_vector(parent_values or {})
        return self._split(np.linalg.solve(self.R, rhs))

    def sample(
        self,
        parent_values: Optional[Mapping[Key, np.ndarray]] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> VectorValues:
        """Draw frontal values given parent values."""
        rhs = self.d - self._parent_vector(parent_values or {})
        noise = resolve_rng(rng).standard_normal(self.dim)
        # x = R^{-1}(rhs + Sigma^{1/2} e)
        if self.model is not None:
            noise = noise * self.model.sigmas
        return self._split(np.linalg.solve(self.R, rhs + noise))

    def covariance(self) -> np.ndarray:
        Rw = self._whitened(self.R)
        return np.linalg.inv(Rw.T @ Rw)

    def as_factor(self) -> JacobianFactor:
        """The conditional as an unnormalized Jacobian factor over all its keys."""
        terms = self._frontal_terms() + list(zip(self._parents, self.S))
        return JacobianFactor(terms, self.d, self.model)

    def _frontal_terms(self) -> List[Tuple[Key, np.ndarray]]:
        terms = []
        offset = 0
        for key, dim in zip(self._frontals, self._frontal_dims):
            terms.append((key, self.R[:, offset:offset + dim]))
            offset += dim
        return terms

    def likelihood(self, frontal_values: Mapping[Key, np.ndarray]) -> JacobianFactor:
        """Fix the frontals and return a factor on the parents.

        With no parents the result is a constant factor whose error equals
        this conditional's error at ``frontal_values``.
        """
        b = self.d - self.R @ self._frontal_vector(frontal_values)
        return JacobianFactor(list(zip(self._parents, self.S)), b, self.model)

    def equals(self, other: "GaussianConditional", tol: float = 1e-9) -> bool:
        if not isinstance(other, GaussianConditional):
            return False
        if self._frontals != other._frontals or self._parents != other._parents:
            return False
        if (self.model is None) != (other.model is None):
            return False
        if self.model is not None and not self.model.equals(other.model, tol):
            return False
        if not np.allclose(self.R, other.R, atol=tol, rtol=0.0):
            return False
        if not np.allclose(self.d, other.d, atol=tol, rtol=0.0):
            return False
        return all(np.allclose(a, b, atol=tol, rtol=0.0) for a, b in zip(self.S, other.S))

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        frontal_str = " ".join(formatter(k) for k in self._frontals)
        header = f"GaussianConditional p({frontal_str}"
        if self._parents:
            header += " | " + " ".join(formatter(k) for k in self._parents)
        lines = [header + ")"]
        for key, matrix in self._frontal_terms():
            lines.append(format_matrix(f"  R[{formatter(key)}]", matrix))
        for key, matrix in zip(self._parents, self.S):
            lines.append(format_matrix(f"  S[{formatter(key)}]", matrix))
        lines.append("  " + format_vector("d", self.d))
        lines.append("  logNormalizationConstant: %.6g" % self.log_normalization_constant())
        if self.model is None:
            lines.append("  No noise model")
        else:
            lines.append("  Noise model: " + self.model.to_string())
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"GaussianConditional(frontals={self._frontals}, parents={self._parents})"
