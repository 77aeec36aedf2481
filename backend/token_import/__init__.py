"""
Token import engine.

Imports externally described tokens into a destination registry, admitting
each origin at most once per registry, resolving nested-ownership accounts,
and processing batches with per-item failure isolation.
"""

__version__ = '1.0.0'
