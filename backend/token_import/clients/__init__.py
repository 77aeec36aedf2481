"""
Registry clients used by the import engine.
"""

from .base import AccountRegistry, DestinationRegistry
from .local_registry import LocalAccountRegistry, LocalDestinationRegistry, LocalToken

__all__ = [
    'AccountRegistry',
    'DestinationRegistry',
    'LocalAccountRegistry',
    'LocalDestinationRegistry',
    'LocalToken',
]
