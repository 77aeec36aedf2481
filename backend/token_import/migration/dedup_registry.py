"""
Dedup Registry for token imports.

The Dedup Registry records which origin tags have been admitted into which
destination registry, keeps per-actor import statistics, and holds the
engine's administrator and value balance. Stores are explicit objects handed
to every component, so separate stores never see each other's state.

Admission is two-phase. reserve() is an atomic insert-if-absent taken before
the mint, commit_import() promotes the reservation and updates the actor's
statistics in one step, and release() drops a reservation whose import did
not go through.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import structlog

from .records import ImportStats, origin_tag_hash
from ..addresses import normalize_address

logger = structlog.get_logger(__name__)


class DedupRegistry(ABC):
    """Store of admitted origin tags, per-actor stats and admin state."""

    @abstractmethod
    async def is_admitted(self, registry_address: str, origin_tag: str) -> bool:
        """True once the tag has been committed for the registry."""

    @abstractmethod
    async def admitted_token_id(self, registry_address: str, origin_tag: str) -> Optional[int]:
        """Token id recorded when the tag was admitted, if any."""

    @abstractmethod
    async def reserve(self, registry_address: str, origin_tag: str) -> bool:
        """Atomically claim the tag. False if it is admitted or already reserved."""

    @abstractmethod
    async def release(self, registry_address: str, origin_tag: str):
        """Drop a reservation that was not committed."""

    @abstractmethod
    async def commit_import(self, registry_address: str, origin_tag: str, actor: str,
                            token_id: int) -> ImportStats:
        """Admit a reserved tag and count the import for the actor, together."""

    @abstractmethod
    async def record_failure(self, actor: str) -> ImportStats:
        """Increment the actor's failed import counter."""

    @abstractmethod
    async def stats_for(self, actor: str) -> ImportStats:
        """Statistics for an actor; zeroes if it never imported."""

    @abstractmethod
    async def clear_admission(self, registry_address: str, origin_tag: str) -> bool:
        """
        Remove an admitted or reserved tag. False if neither was present.

        Reservations left behind by an interrupted import are cleared too.
        """

    @abstractmethod
    async def get_admin(self) -> Optional[str]:
        """Current administrator address."""

    @abstractmethod
    async def set_admin(self, admin_address: str):
        """Replace the administrator address."""

    @abstractmethod
    async def credit(self, amount: int) -> int:
        """Add value to the engine balance and return the new balance."""

    @abstractmethod
    async def balance(self) -> int:
        """Current engine balance."""

    @abstractmethod
    async def drain_balance(self) -> int:
        """Set the balance to zero and return what it held."""


class InMemoryDedupRegistry(DedupRegistry):
    """
    Process-local Dedup Registry.

    A single threading.Lock guards all state, so reserve() stays an atomic
    insert-if-absent even when imports run on several threads.
    """

    _RESERVED = None

    def __init__(self, admin_address: Optional[str] = None):
        self._lock = threading.Lock()
        # (registry, origin hash) -> token id, or _RESERVED while in flight
        self._admissions: Dict[Tuple[str, str], Optional[int]] = {}
        self._stats: Dict[str, ImportStats] = {}
        self._admin = normalize_address(admin_address) if admin_address else None
        self._balance = 0
        self.logger = logger.bind(component="InMemoryDedupRegistry")

    @staticmethod
    def _key(registry_address: str, origin_tag: str) -> Tuple[str, str]:
        return normalize_address(registry_address), origin_tag_hash(origin_tag)

    def _stats_entry(self, actor: str) -> ImportStats:
        return self._stats.setdefault(normalize_address(actor), ImportStats())

    @staticmethod
    def _copy(stats: ImportStats) -> ImportStats:
        return ImportStats(stats.total_imported, stats.total_failed, stats.last_import_time)

    async def is_admitted(self, registry_address, origin_tag) -> bool:
        key = self._key(registry_address, origin_tag)
        with self._lock:
            return self._admissions.get(key, self._RESERVED) is not self._RESERVED

    async def admitted_token_id(self, registry_address, origin_tag) -> Optional[int]:
        with self._lock:
            return self._admissions.get(self._key(registry_address, origin_tag))

    async def reserve(self, registry_address, origin_tag) -> bool:
        key = self._key(registry_address, origin_tag)
        with self._lock:
            if key in self._admissions:
                return False
            self._admissions[key] = self._RESERVED
            return True

    async def release(self, registry_address, origin_tag):
        key = self._key(registry_address, origin_tag)
        with self._lock:
            if key in self._admissions and self._admissions[key] is self._RESERVED:
                del self._admissions[key]

    async def commit_import(self, registry_address, origin_tag, actor, token_id) -> ImportStats:
        key = self._key(registry_address, origin_tag)
        with self._lock:
            if self._admissions.get(key, 0) is not self._RESERVED:
                raise RuntimeError(f"Origin tag {origin_tag!r} was not reserved")
            self._admissions[key] = token_id
            stats = self._stats_entry(actor)
            stats.total_imported += 1
            stats.last_import_time = datetime.now(timezone.utc)
            return self._copy(stats)

    async def record_failure(self, actor) -> ImportStats:
        with self._lock:
            stats = self._stats_entry(actor)
            stats.total_failed += 1
            return self._copy(stats)

    async def stats_for(self, actor) -> ImportStats:
        with self._lock:
            stats = self._stats.get(normalize_address(actor))
            return self._copy(stats) if stats else ImportStats()

    async def clear_admission(self, registry_address, origin_tag) -> bool:
        key = self._key(registry_address, origin_tag)
        with self._lock:
            if key not in self._admissions:
                return False
            del self._admissions[key]
            return True

    async def get_admin(self) -> Optional[str]:
        return self._admin

    async def set_admin(self, admin_address):
        with self._lock:
            self._admin = normalize_address(admin_address)

    async def credit(self, amount) -> int:
        with self._lock:
            self._balance += amount
            return self._balance

    async def balance(self) -> int:
        return self._balance

    async def drain_balance(self) -> int:
        with self._lock:
            amount, self._balance = self._balance, 0
            return amount
