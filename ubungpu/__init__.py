"""ubungpu: GPU driver and compute toolkit setup for Ubuntu hosts.

Core design goals:
- Detect once, dispatch to one vendor setup (NVIDIA or AMD)
- Idempotent steps, safe to re-run after an interruption
- WARNING for recoverable failures, ERROR aborts the run
- Console output always, install log best-effort
"""

__version__ = "0.2.0"

__all__ = ["__version__"]
