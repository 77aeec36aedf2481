"""
Database-backed Dedup Registry.

Admissions, statistics and engine state are stored through the Django ORM.
reserve() relies on the unique (registry_address, origin_hash) constraint,
so two processes racing on the same origin tag cannot both hold it.
"""

from typing import Optional

import structlog
from asgiref.sync import sync_to_async
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from .dedup_registry import DedupRegistry
from .records import ImportStats, origin_tag_hash
from ..addresses import normalize_address
from ..models import AdmittedOrigin, EngineState, ImporterStats

logger = structlog.get_logger(__name__)


def _to_stats(row: Optional[ImporterStats]) -> ImportStats:
    if row is None:
        return ImportStats()
    return ImportStats(
        total_imported=row.total_imported,
        total_failed=row.total_failed,
        last_import_time=row.last_import_time,
    )


class DatabaseDedupRegistry(DedupRegistry):
    """Dedup Registry persisted with the Django ORM."""

    def __init__(self, admin_address: Optional[str] = None):
        self.initial_admin = normalize_address(admin_address) if admin_address else ''
        self.logger = logger.bind(component="DatabaseDedupRegistry")

    @staticmethod
    def _admissions(registry_address: str, origin_tag: str):
        return AdmittedOrigin.objects.filter(
            registry_address=normalize_address(registry_address),
            origin_hash=origin_tag_hash(origin_tag),
        )

    def _engine_state(self) -> EngineState:
        state, _ = EngineState.objects.get_or_create(
            pk=EngineState.SINGLETON_ID,
            defaults={'admin_address': self.initial_admin},
        )
        return state

    # Synchronous ORM operations, run through sync_to_async

    def _is_admitted_sync(self, registry_address, origin_tag) -> bool:
        return self._admissions(registry_address, origin_tag).filter(
            status=AdmittedOrigin.STATUS_ADMITTED
        ).exists()

    def _admitted_token_id_sync(self, registry_address, origin_tag) -> Optional[int]:
        return self._admissions(registry_address, origin_tag).filter(
            status=AdmittedOrigin.STATUS_ADMITTED
        ).values_list('token_id', flat=True).first()

    def _reserve_sync(self, registry_address, origin_tag) -> bool:
        try:
            with transaction.atomic():
                AdmittedOrigin.objects.create(
                    registry_address=normalize_address(registry_address),
                    origin_tag=origin_tag,
                    origin_hash=origin_tag_hash(origin_tag),
                    status=AdmittedOrigin.STATUS_RESERVED,
                )
        except IntegrityError:
            return False
        return True

    def _release_sync(self, registry_address, origin_tag):
        self._admissions(registry_address, origin_tag).filter(
            status=AdmittedOrigin.STATUS_RESERVED
        ).delete()

    def _commit_import_sync(self, registry_address, origin_tag, actor, token_id) -> ImportStats:
        now = timezone.now()
        actor = normalize_address(actor)

        with transaction.atomic():
            promoted = self._admissions(registry_address, origin_tag).filter(
                status=AdmittedOrigin.STATUS_RESERVED
            ).update(
                status=AdmittedOrigin.STATUS_ADMITTED,
                token_id=token_id,
                admitted_by=actor,
                admitted_at=now,
            )
            if not promoted:
                raise RuntimeError(f"Origin tag {origin_tag!r} was not reserved")

            stats, _ = ImporterStats.objects.select_for_update().get_or_create(actor=actor)
            ImporterStats.objects.filter(pk=stats.pk).update(
                total_imported=F('total_imported') + 1,
                last_import_time=now,
            )
            stats.refresh_from_db()

        return _to_stats(stats)

    def _record_failure_sync(self, actor) -> ImportStats:
        actor = normalize_address(actor)
        with transaction.atomic():
            stats, _ = ImporterStats.objects.select_for_update().get_or_create(actor=actor)
            ImporterStats.objects.filter(pk=stats.pk).update(total_failed=F('total_failed') + 1)
            stats.refresh_from_db()
        return _to_stats(stats)

    def _stats_for_sync(self, actor) -> ImportStats:
        return _to_stats(ImporterStats.objects.filter(actor=normalize_address(actor)).first())

    def _clear_admission_sync(self, registry_address, origin_tag) -> bool:
        deleted, _ = self._admissions(registry_address, origin_tag).delete()
        return deleted > 0

    def _get_admin_sync(self) -> Optional[str]:
        return self._engine_state().admin_address or None

    def _set_admin_sync(self, admin_address):
        with transaction.atomic():
            state = self._engine_state()
            EngineState.objects.filter(pk=state.pk).update(
                admin_address=normalize_address(admin_address)
            )

    def _credit_sync(self, amount) -> int:
        with transaction.atomic():
            state = self._engine_state()
            EngineState.objects.filter(pk=state.pk).update(balance=F('balance') + amount)
            state.refresh_from_db()
        return int(state.balance)

    def _balance_sync(self) -> int:
        return int(self._engine_state().balance)

    def _drain_balance_sync(self) -> int:
        with transaction.atomic():
            self._engine_state()
            state = EngineState.objects.select_for_update().get(pk=EngineState.SINGLETON_ID)
            amount = int(state.balance)
            EngineState.objects.filter(pk=state.pk).update(balance=0)
        return amount

    # DedupRegistry interface

    async def is_admitted(self, registry_address, origin_tag) -> bool:
        return await sync_to_async(self._is_admitted_sync)(registry_address, origin_tag)

    async def admitted_token_id(self, registry_address, origin_tag) -> Optional[int]:
        return await sync_to_async(self._admitted_token_id_sync)(registry_address, origin_tag)

    async def reserve(self, registry_address, origin_tag) -> bool:
        return await sync_to_async(self._reserve_sync)(registry_address, origin_tag)

    async def release(self, registry_address, origin_tag):
        await sync_to_async(self._release_sync)(registry_address, origin_tag)

    async def commit_import(self, registry_address, origin_tag, actor, token_id) -> ImportStats:
        return await sync_to_async(self._commit_import_sync)(
            registry_address, origin_tag, actor, token_id
        )

    async def record_failure(self, actor) -> ImportStats:
        return await sync_to_async(self._record_failure_sync)(actor)

    async def stats_for(self, actor) -> ImportStats:
        return await sync_to_async(self._stats_for_sync)(actor)

    async def clear_admission(self, registry_address, origin_tag) -> bool:
        return await sync_to_async(self._clear_admission_sync)(registry_address, origin_tag)

    async def get_admin(self) -> Optional[str]:
        return await sync_to_async(self._get_admin_sync)()

    async def set_admin(self, admin_address):
        await sync_to_async(self._set_admin_sync)(admin_address)

    async def credit(self, amount) -> int:
        return await sync_to_async(self._credit_sync)(amount)

    async def balance(self) -> int:
        return await sync_to_async(self._balance_sync)()

    async def drain_balance(self) -> int:
        return await sync_to_async(self._drain_balance_sync)()
