"""Reconciliation core — the layer that drives a node toward its desired state.

This package provides the primitives for:
- Drift detection: byte-exact comparison of managed files against intent
- Effect accumulation: deferred service restarts and reboots per iteration
- Commit ledger: the last commit each tracked repository converged to
- Orchestration: one sequential convergence pass per polling interval
"""
