"""Performance benchmarks for hybridbn.

This package contains microbenchmarks for hot paths in the library,
including hybrid elimination, MPE search and pruning.
"""
