"""
Token Import Migration Package

The import engine core: origin lookup, nested-ownership account
resolution, record validation, the Dedup Registry, the single-record
importer and the administrative operations. The Django-backed Dedup
Registry lives in db_registry and is imported from there directly.
"""

from .account_resolver import NestedAccountParams, NestedAccountResolver
from .administration import ImportAdministration
from .dedup_registry import DedupRegistry, InMemoryDedupRegistry
from .import_validator import ImportValidator
from .importer import SingleRecordImporter
from .origin_lookup import OriginLookup
from .records import (
    EventType,
    ImportEvent,
    ImportRecord,
    ImportResult,
    ImportStats,
    ValidationResult,
    origin_tag_hash,
)

__all__ = [
    'DedupRegistry',
    'EventType',
    'ImportAdministration',
    'ImportEvent',
    'ImportRecord',
    'ImportResult',
    'ImportStats',
    'ImportValidator',
    'InMemoryDedupRegistry',
    'NestedAccountParams',
    'NestedAccountResolver',
    'OriginLookup',
    'SingleRecordImporter',
    'ValidationResult',
    'origin_tag_hash',
]
