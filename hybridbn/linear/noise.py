"""Diagonal Gaussian noise models for linear factors and conditionals."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

LOG_2PI = float(np.log(2.0 * np.pi))


@dataclass(frozen=True, eq=False)
class NoiseModel:
    """Zero-mean Gaussian noise with diagonal covariance diag(sigmas**2).

    Attributes:
        sigmas: Standard deviations, shape (dim,).
    """

    sigmas: np.ndarray

    def __post_init__(self) -> None:
        sigmas = np.atleast_1d(np.asarray(self.sigmas, dtype=float))
        if sigmas.ndim != 1:
            raise ValueError(f"sigmas must be 1D, got shape {sigmas.shape}")
        if np.any(sigmas <= 0.0):
            raise ValueError("sigmas must be strictly positive")
        object.__setattr__(self, "sigmas", sigmas)

    @classmethod
    def isotropic(cls, dim: int, sigma: float) -> "NoiseModel":
        if dim < 1:
            raise ValueError(f"dim must be >= 1, got {dim}")
        return cls(np.full(dim, float(sigma)))

    @classmethod
    def diagonal(cls, sigmas) -> "NoiseModel":
        return cls(np.asarray(sigmas, dtype=float))

    @classmethod
    def unit(cls, dim: int) -> "NoiseModel":
        return cls.isotropic(dim, 1.0)

    @property
    def dim(self) -> int:
        return int(self.sigmas.shape[0])

    def whiten(self, v: np.ndarray) -> np.ndarray:
        """Scale rows by 1/sigma. Works on vectors and on matrices row-wise."""
        v = np.asarray(v, dtype=float)
        if v.ndim == 1:
            return v / self.sigmas
        return v / self.sigmas[:, np.newaxis]

    def log_normalizer(self) -> float:
        """log of the Gaussian normalizer: n/2 log(2 pi) + 1/2 log det(Sigma)."""
        return 0.5 * self.dim * LOG_2PI + float(np.sum(np.log(self.sigmas)))

    def equals(self, other: "NoiseModel", tol: float = 1e-9) -> bool:
        if other is None or self.dim != other.dim:
            return False
        return bool(np.allclose(self.sigmas, other.sigmas, atol=tol, rtol=0.0))

    def to_string(self) -> str:
        if np.allclose(self.sigmas, self.sigmas[0]):
            return f"isotropic dim={self.dim} sigma={self.sigmas[0]:.6g}"
        return "diagonal sigmas [" + " ".join(f"{s:.6g}" for s in self.sigmas) + "]"
