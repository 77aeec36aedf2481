"""
Batch integration for the token import engine.
"""

from .batch_manager import (
    BatchConfiguration,
    BatchImportOrchestrator,
    BatchImportReport,
    BatchStatus,
)

__all__ = [
    'BatchConfiguration',
    'BatchImportOrchestrator',
    'BatchImportReport',
    'BatchStatus',
]
