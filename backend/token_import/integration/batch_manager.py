"""
Batch Import Orchestrator

This module runs many single-record imports as one batch:
- Batch size bounds enforced before any record is touched
- Sequential, in-order processing with per-item failure isolation
- One ImportResult per submitted record
- Batch started / completed notifications and progress tracking
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from ..config import get_import_config
from ..exceptions import ImportErrorCode, InvalidInputError
from ..logging_utils import OperationType, log_import_operation
from ..migration.importer import EventListener, SingleRecordImporter, notify_listeners
from ..migration.records import EventType, ImportEvent, ImportRecord, ImportResult

logger = structlog.get_logger(__name__)

# Failures the importer already counted in the actor's statistics
IMPORTER_COUNTED_FAILURES = frozenset({ImportErrorCode.DESTINATION_REJECTED})


class BatchStatus(Enum):
    """Batch processing status enumeration."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class BatchImportReport:
    """Outcome of one batch, with results in input order."""
    batch_id: str
    total_items: int
    status: BatchStatus
    start_time: datetime
    results: List[ImportResult] = field(default_factory=list)
    end_time: Optional[datetime] = None

    @property
    def processed_items(self) -> int:
        return len(self.results)

    @property
    def successful_items(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed_items(self) -> int:
        return self.processed_items - self.successful_items

    @property
    def progress_percentage(self) -> float:
        if self.total_items == 0:
            return 0.0
        return (self.processed_items / self.total_items) * 100

    @property
    def success_rate(self) -> float:
        if self.processed_items == 0:
            return 0.0
        return (self.successful_items / self.processed_items) * 100

    @property
    def duration(self) -> Optional[timedelta]:
        if self.start_time:
            end_time = self.end_time or datetime.now(timezone.utc)
            return end_time - self.start_time
        return None

    @property
    def failed_origin_tags(self) -> List[str]:
        """Origin tags to resubmit in a follow-up batch."""
        return [result.origin_tag for result in self.results if not result.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_id': self.batch_id,
            'total_items': self.total_items,
            'status': self.status.value,
            'successful_items': self.successful_items,
            'failed_items': self.failed_items,
            'results': [result.to_dict() for result in self.results],
        }


@dataclass
class BatchConfiguration:
    """Batch processing configuration."""
    max_batch_size: int = 100

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'BatchConfiguration':
        return cls(max_batch_size=config['max_batch_size'])

    @classmethod
    def from_settings(cls) -> 'BatchConfiguration':
        """Create configuration from environment and Django settings."""
        return cls.from_config(get_import_config())


class BatchImportOrchestrator:
    """
    Runs batches of imports through a SingleRecordImporter.

    Records are imported one after another in input order. A failure in one
    record, including an unexpected exception, never stops the records
    after it. Failed records are not retried; callers resubmit
    failed_origin_tags in a new batch.
    """

    def __init__(
        self,
        importer: SingleRecordImporter,
        config: Optional[BatchConfiguration] = None,
        listeners: Optional[List[EventListener]] = None,
        progress_callback: Optional[Callable[[BatchImportReport], None]] = None
    ):
        self.importer = importer
        self.config = config or BatchConfiguration.from_settings()
        self.listeners = list(listeners or [])
        self.progress_callback = progress_callback
        self.logger = logger.bind(component="BatchImportOrchestrator")

        self.active_batches: Dict[str, BatchImportReport] = {}

        self.total_batches_processed = 0
        self.total_items_processed = 0
        self.total_successful_items = 0
        self.total_failed_items = 0

        self.logger.info(
            "BatchImportOrchestrator initialized",
            config=asdict(self.config)
        )

    def check_batch_size(self, count: int):
        """
        Raises:
            InvalidInputError: the batch is empty or larger than max_batch_size
        """
        if count == 0:
            raise InvalidInputError("Batch is empty")
        if count > self.config.max_batch_size:
            raise InvalidInputError(
                f"Batch size {count} exceeds maximum of {self.config.max_batch_size}"
            )

    @log_import_operation(OperationType.BATCH_IMPORT, "import_batch")
    async def import_batch(self, records: Sequence[ImportRecord], actor: str) -> BatchImportReport:
        """
        Import a batch of records on behalf of actor.

        Args:
            records: Records to import, processed in order
            actor: Importing actor credited in the statistics

        Returns:
            BatchImportReport with exactly one result per record

        Raises:
            InvalidInputError: empty batch or batch above the size limit
        """
        records = list(records)
        self.check_batch_size(len(records))

        batch_id = f"batch_{uuid.uuid4().hex[:12]}"
        report = BatchImportReport(
            batch_id=batch_id,
            total_items=len(records),
            status=BatchStatus.RUNNING,
            start_time=datetime.now(timezone.utc)
        )
        self.active_batches[batch_id] = report

        self._emit(ImportEvent(EventType.BATCH_STARTED, {
            'batch_id': batch_id,
            'count': len(records),
            'actor': actor,
        }))

        try:
            for position, record in enumerate(records):
                result = await self._import_isolated(record, actor, batch_id, position)
                report.results.append(result)
                self._report_progress(report)
        finally:
            self.active_batches.pop(batch_id, None)

        report.status = BatchStatus.COMPLETED
        report.end_time = datetime.now(timezone.utc)

        self.total_batches_processed += 1
        self.total_items_processed += report.processed_items
        self.total_successful_items += report.successful_items
        self.total_failed_items += report.failed_items

        self._emit(ImportEvent(EventType.BATCH_COMPLETED, {
            'batch_id': batch_id,
            'success_count': report.successful_items,
            'failure_count': report.failed_items,
        }))

        self.logger.info(
            "Batch import completed",
            batch_id=batch_id,
            processed=report.processed_items,
            successful=report.successful_items,
            failed=report.failed_items,
            duration=str(report.duration),
            success_rate=report.success_rate
        )

        return report

    async def _import_isolated(self, record: ImportRecord, actor: str, batch_id: str,
                               position: int) -> ImportResult:
        try:
            result = await self.importer.import_record(record, actor)
        except Exception as e:
            self.logger.error(
                "Record import raised in batch",
                batch_id=batch_id,
                position=position,
                origin_tag=record.origin_tag,
                error=str(e)
            )
            result = ImportResult.failed(
                record.origin_tag, f"Import failed: {e}", ImportErrorCode.IMPORT_FAILED
            )

        if not result.success and result.error_code not in IMPORTER_COUNTED_FAILURES:
            try:
                await self.importer.dedup_registry.record_failure(actor)
            except Exception as e:
                self.logger.error(
                    "Failed to record import failure",
                    batch_id=batch_id,
                    actor=actor,
                    error=str(e)
                )

        return result

    def _report_progress(self, report: BatchImportReport):
        if not self.progress_callback:
            return
        try:
            self.progress_callback(report)
        except Exception as e:
            self.logger.error(
                "Progress callback error",
                batch_id=report.batch_id,
                error=str(e)
            )

    def _emit(self, event: ImportEvent):
        self.logger.info("Batch event", event_type=event.event_type.value, **event.details)
        notify_listeners(self.listeners, event, self.logger)

    def get_batch_progress(self, batch_id: str) -> Optional[BatchImportReport]:
        return self.active_batches.get(batch_id)

    def get_statistics(self) -> Dict[str, Any]:
        """Get batch processing statistics."""
        return {
            'total_batches_processed': self.total_batches_processed,
            'total_items_processed': self.total_items_processed,
            'total_successful_items': self.total_successful_items,
            'total_failed_items': self.total_failed_items,
            'active_batches': len(self.active_batches),
            'success_rate': (
                (self.total_successful_items / self.total_items_processed * 100)
                if self.total_items_processed > 0 else 0.0
            ),
            'configuration': asdict(self.config)
        }
