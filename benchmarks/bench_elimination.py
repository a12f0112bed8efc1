"""Benchmark hybrid elimination and pruning on switching chains."""

import time
from typing import Dict

import numpy as np

from hybridbn import (
    DiscreteConditional,
    DiscreteKey,
    GaussianConditional,
    GaussianMixture,
    HybridBayesNet,
    symbol,
)

I = np.eye(1)


def switching_chain(length: int) -> HybridBayesNet:
    """Chain x_k = x_{k-1} + step(m_k) + noise with one measurement per x_k."""
    net = HybridBayesNet()
    for k in reversed(range(length)):
        net.push_back(
            GaussianConditional.from_mean_and_stddev(symbol("z", k), [0.0], 0.2, parents=[(symbol("x", k), I)])
        )
    for k in reversed(range(1, length)):
        net.push_back(
            GaussianMixture(
                [symbol("x", k)],
                [symbol("x", k - 1)],
                [DiscreteKey(symbol("m", k), 2)],
                [
                    GaussianConditional.from_mean_and_stddev(
                        symbol("x", k), [step], 0.1, parents=[(symbol("x", k - 1), I)]
                    )
                    for step in (0.0, 1.0)
                ],
            )
        )
    net.push_back(GaussianConditional.from_mean_and_stddev(symbol("x", 0), [0.0], 1.0))
    for k in reversed(range(1, length)):
        net.push_back(DiscreteConditional(DiscreteKey(symbol("m", k), 2), "1/1"))
    return net


def benchmark_elimination(length: int, max_nr_leaves: int = 4, seed: int = 0) -> Dict[str, float]:
    """Benchmark measurement, elimination, MPE and pruning.

    Args:
        length: Number of continuous states in the chain.
        max_nr_leaves: Pruning budget.
        seed: Random seed for the simulated measurements.

    Returns:
        Dictionary with timing results.
    """
    net = switching_chain(length)
    truth = net.sample(rng=np.random.default_rng(seed))
    measurements = {symbol("z", k): truth.at(symbol("z", k)) for k in range(length)}
    graph = net.to_factor_graph(measurements)

    start = time.perf_counter()
    posterior = graph.eliminate_sequential()
    eliminated = time.perf_counter()
    posterior.optimize()
    optimized = time.perf_counter()
    posterior.prune(max_nr_leaves)
    pruned = time.perf_counter()

    return {
        "length": length,
        "nr_modes": 2 ** (length - 1),
        "eliminate_sec": eliminated - start,
        "optimize_sec": optimized - eliminated,
        "prune_sec": pruned - optimized,
    }


if __name__ == "__main__":
    print("Benchmarking hybrid elimination...")

    for length in (3, 5, 7):
        results = benchmark_elimination(length)
        print(f"Switching chain (length {length}, {results['nr_modes']} modes):")
        print(f"  Eliminate: {results['eliminate_sec']*1e3:.2f} ms")
        print(f"  Optimize:  {results['optimize_sec']*1e3:.2f} ms")
        print(f"  Prune:     {results['prune_sec']*1e3:.2f} ms")
