"""
Token import service.

TokenImportService wires the import engine together for one destination
registry and exposes the operations callers use: validation, single and
batch imports, admission and statistics queries, and administration.
"""

import time
from typing import Any, Dict, List, Optional, Sequence

import structlog

from .clients.base import AccountRegistry, DestinationRegistry
from .config import get_import_config
from .integration.batch_manager import BatchConfiguration, BatchImportOrchestrator, BatchImportReport
from .migration.account_resolver import NestedAccountResolver
from .migration.administration import ImportAdministration
from .migration.dedup_registry import DedupRegistry
from .migration.import_validator import ImportValidator
from .migration.importer import EventListener, SingleRecordImporter
from .migration.origin_lookup import OriginLookup
from .migration.records import ImportRecord, ImportResult, ImportStats, ValidationResult

logger = structlog.get_logger(__name__)


class TokenImportService:
    """
    Import engine facade for one destination registry.

    The Dedup Registry is passed in rather than created here, so several
    services (one per destination registry) can share the same store and
    the same per-actor statistics.
    """

    def __init__(
        self,
        registry: DestinationRegistry,
        dedup_registry: DedupRegistry,
        account_registry: Optional[AccountRegistry] = None,
        listeners: Optional[List[EventListener]] = None,
        config: Dict[str, Any] = None
    ):
        self.config = config or get_import_config()
        self.registry = registry
        self.dedup_registry = dedup_registry
        self.logger = logger.bind(component="TokenImportService", registry=registry.address)

        self.origin_lookup = OriginLookup(registry, dedup_registry, self.config)
        self.account_resolver = (
            NestedAccountResolver(account_registry, config=self.config)
            if account_registry is not None else None
        )
        self.validator = ImportValidator(
            registry,
            dedup_registry,
            origin_lookup=self.origin_lookup,
            account_resolver=self.account_resolver,
            config=self.config
        )
        self.importer = SingleRecordImporter(
            registry,
            dedup_registry,
            account_resolver=self.account_resolver,
            validator=self.validator,
            origin_lookup=self.origin_lookup,
            listeners=listeners,
            config=self.config
        )
        self.batch_orchestrator = BatchImportOrchestrator(
            self.importer,
            BatchConfiguration.from_config(self.config),
            listeners=listeners
        )
        self.administration = ImportAdministration(dedup_registry)

        self.service_stats = {
            'single_imports': 0,
            'batch_imports': 0,
            'records_imported': 0,
            'records_failed': 0,
            'service_start_time': time.time(),
        }

    async def validate(self, record: ImportRecord) -> ValidationResult:
        """Pre-flight check of one record; never mutates state."""
        return await self.validator.validate(record)

    async def validate_batch(self, records: Sequence[ImportRecord]) -> List[ValidationResult]:
        """Pre-flight check of a whole batch, including the batch size bounds."""
        self.batch_orchestrator.check_batch_size(len(records))
        return await self.validator.validate_batch(records)

    async def import_record(
        self,
        record: ImportRecord,
        actor: str,
        value: int = 0,
        raise_on_failure: bool = False
    ) -> ImportResult:
        """
        Import one record.

        Args:
            record: Record to import
            actor: Importing actor
            value: Value sent with the call, credited to the engine balance
                only when the import succeeds
            raise_on_failure: Raise the matching TokenImportError instead of
                returning a failed result

        Returns:
            ImportResult
        """
        self.administration.check_payment(value)

        result = await self.importer.import_record(record, actor)
        if result.success and value:
            await self.administration.receive_payment(value)

        self.service_stats['single_imports'] += 1
        self.service_stats['records_imported' if result.success else 'records_failed'] += 1

        if raise_on_failure:
            result.raise_for_failure()
        return result

    async def import_batch(self, records: Sequence[ImportRecord], actor: str,
                           value: int = 0) -> BatchImportReport:
        """Import a batch; see BatchImportOrchestrator.import_batch."""
        # Bounds are checked before value is credited
        self.batch_orchestrator.check_batch_size(len(records))
        if value:
            await self.administration.receive_payment(value)

        report = await self.batch_orchestrator.import_batch(records, actor)

        self.service_stats['batch_imports'] += 1
        self.service_stats['records_imported'] += report.successful_items
        self.service_stats['records_failed'] += report.failed_items
        return report

    async def is_admitted(self, origin_tag: str) -> bool:
        return await self.dedup_registry.is_admitted(self.registry.address, origin_tag)

    async def stats_for(self, actor: str) -> ImportStats:
        return await self.dedup_registry.stats_for(actor)

    async def find_by_origin_tag(self, origin_tag: str) -> Optional[int]:
        return await self.origin_lookup.find_by_origin_tag(origin_tag)

    async def compute_nested_account(self, parent_token_id: int) -> str:
        """Derive, without creating it, the account owned by a destination token."""
        if self.account_resolver is None:
            raise RuntimeError("No account registry configured")
        return await self.account_resolver.compute(self.registry.address, parent_token_id)

    # Administrative operations

    async def transfer_admin(self, caller: str, new_admin: str):
        await self.administration.transfer_admin(caller, new_admin)

    async def clear_admission(self, caller: str, origin_tag: str) -> bool:
        return await self.administration.clear_admission(caller, self.registry.address, origin_tag)

    async def withdraw(self, caller: str, recipient: str) -> int:
        return await self.administration.withdraw(caller, recipient)

    async def balance(self) -> int:
        return await self.dedup_registry.balance()

    def get_service_statistics(self) -> Dict[str, Any]:
        """Get import service statistics."""
        stats = self.service_stats.copy()
        stats['uptime_seconds'] = time.time() - stats['service_start_time']
        stats['batch'] = self.batch_orchestrator.get_statistics()
        stats['validation'] = self.validator.get_validation_statistics()

        attempted = stats['records_imported'] + stats['records_failed']
        if attempted > 0:
            stats['success_rate'] = (stats['records_imported'] / attempted) * 100

        return stats
