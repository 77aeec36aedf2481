"""
Unit Tests for the Batch Import Orchestrator

Tests for batch imports including:
- Batch size bounds checked before any record is processed
- Per-item failure isolation and in-order results
- Batch notifications, progress tracking and failure statistics
"""

from unittest.mock import AsyncMock, patch

from django.test import SimpleTestCase

from ..exceptions import ImportErrorCode, InvalidInputError, MintRejectedError
from ..integration.batch_manager import (
    BatchConfiguration,
    BatchImportOrchestrator,
    BatchStatus,
)
from ..migration.account_resolver import NestedAccountResolver
from ..migration.dedup_registry import InMemoryDedupRegistry
from ..migration.importer import SingleRecordImporter
from ..migration.records import EventType
from .helpers import ACTOR, make_config, make_record, make_registries


class TestBatchImportOrchestrator(SimpleTestCase):
    """Test cases for BatchImportOrchestrator."""

    def setUp(self):
        self.config = make_config()
        self.registry, self.accounts = make_registries()
        self.dedup = InMemoryDedupRegistry()
        self.events = []
        self.importer = SingleRecordImporter(
            self.registry,
            self.dedup,
            account_resolver=NestedAccountResolver(self.accounts, config=self.config),
            config=self.config
        )
        self.orchestrator = BatchImportOrchestrator(
            self.importer,
            BatchConfiguration(max_batch_size=5),
            listeners=[self.events.append]
        )

    async def test_successful_batch(self):
        records = [make_record(f'0xC/{i}') for i in range(1, 4)]

        report = await self.orchestrator.import_batch(records, ACTOR)

        self.assertEqual(report.status, BatchStatus.COMPLETED)
        self.assertEqual([r.new_token_id for r in report.results], [1, 2, 3])
        self.assertEqual(report.successful_items, 3)
        self.assertEqual(report.failed_items, 0)
        self.assertEqual(report.progress_percentage, 100.0)
        self.assertIsNotNone(report.end_time)

        stats = await self.dedup.stats_for(ACTOR)
        self.assertEqual(stats.total_imported, 3)

    async def test_empty_batch_is_rejected(self):
        with self.assertRaises(InvalidInputError) as context:
            await self.orchestrator.import_batch([], ACTOR)

        self.assertEqual(context.exception.code, ImportErrorCode.INVALID_INPUT)
        self.assertEqual(self.events, [])

    async def test_oversized_batch_is_rejected_before_processing(self):
        records = [make_record(f'0xC/{i}') for i in range(6)]

        with self.assertRaises(InvalidInputError) as context:
            await self.orchestrator.import_batch(records, ACTOR)

        self.assertIn("exceeds maximum of 5", context.exception.reason)
        self.assertEqual(await self.registry.read_total_count(), 0)
        self.assertEqual(self.events, [])

    async def test_batch_at_size_limit_is_accepted(self):
        records = [make_record(f'0xC/{i}') for i in range(5)]

        report = await self.orchestrator.import_batch(records, ACTOR)

        self.assertEqual(report.successful_items, 5)

    async def test_invalid_record_does_not_stop_batch(self):
        records = [
            make_record('0xC/1'),
            make_record('0xC/2', royalty_rate=101),
            make_record('0xC/3'),
        ]

        report = await self.orchestrator.import_batch(records, ACTOR)

        self.assertEqual([r.success for r in report.results], [True, False, True])
        self.assertEqual([r.origin_tag for r in report.results], ['0xC/1', '0xC/2', '0xC/3'])
        self.assertIsNone(report.results[1].new_token_id)
        self.assertEqual(report.results[1].error_code, ImportErrorCode.INVALID_INPUT)
        self.assertEqual(report.results[2].new_token_id, 2)
        self.assertEqual(report.failed_origin_tags, ['0xC/2'])

        stats = await self.dedup.stats_for(ACTOR)
        self.assertEqual((stats.total_imported, stats.total_failed), (2, 1))

    async def test_duplicate_within_batch(self):
        report = await self.orchestrator.import_batch(
            [make_record('0xC/1'), make_record('0xC/1')], ACTOR
        )

        self.assertEqual(report.successful_items, 1)
        self.assertEqual(report.failed_items, 1)
        self.assertEqual(report.results[1].error_code, ImportErrorCode.ALREADY_IMPORTED)
        self.assertEqual(await self.registry.read_total_count(), 1)

    async def test_unexpected_error_is_isolated(self):
        original = self.importer.import_record

        async def flaky_import(record, actor):
            if record.origin_tag == '0xC/2':
                raise ConnectionError("node unreachable")
            return await original(record, actor)

        with patch.object(self.importer, 'import_record', flaky_import):
            report = await self.orchestrator.import_batch(
                [make_record(f'0xC/{i}') for i in range(1, 4)], ACTOR
            )

        failed = report.results[1]
        self.assertFalse(failed.success)
        self.assertEqual(failed.error_code, ImportErrorCode.IMPORT_FAILED)
        self.assertIn("node unreachable", failed.reason)
        self.assertEqual([r.success for r in report.results], [True, False, True])

    async def test_failures_are_counted_once(self):
        rejecting_mint = AsyncMock(side_effect=MintRejectedError("Pausable: paused"))
        records = [make_record('0xC/1'), make_record('0xC/2', metadata_uri='')]

        with patch.object(self.registry, 'mint', rejecting_mint):
            report = await self.orchestrator.import_batch(records, ACTOR)

        self.assertEqual(report.results[0].error_code, ImportErrorCode.DESTINATION_REJECTED)
        self.assertEqual(report.results[1].error_code, ImportErrorCode.INVALID_INPUT)
        stats = await self.dedup.stats_for(ACTOR)
        self.assertEqual((stats.total_imported, stats.total_failed), (0, 2))

    async def test_missing_parent_in_batch(self):
        records = [
            make_record('0xBBB/1', nested_source_tag='0xAAA/7'),
            make_record('0xAAA/7'),
            make_record('0xBBB/2', nested_source_tag='0xAAA/7'),
        ]

        report = await self.orchestrator.import_batch(records, ACTOR)

        self.assertEqual(report.results[0].error_code, ImportErrorCode.PARENT_NOT_FOUND)
        self.assertTrue(report.results[1].success)
        self.assertTrue(report.results[2].success)
        self.assertNotEqual(report.results[2].recipient, records[2].recipient)

    async def test_batch_events(self):
        report = await self.orchestrator.import_batch(
            [make_record('0xC/1'), make_record('0xC/2', royalty_rate=101)], ACTOR
        )

        self.assertEqual(
            [e.event_type for e in self.events],
            [EventType.BATCH_STARTED, EventType.BATCH_COMPLETED]
        )
        started, completed = self.events
        self.assertEqual(started.details['batch_id'], report.batch_id)
        self.assertEqual(started.details['count'], 2)
        self.assertEqual(started.details['actor'], ACTOR)
        self.assertEqual(completed.details['success_count'], 1)
        self.assertEqual(completed.details['failure_count'], 1)

    async def test_progress_callback(self):
        progress = []

        def record_progress(report):
            tracked = self.orchestrator.get_batch_progress(report.batch_id)
            progress.append((tracked.processed_items, tracked.status))

        self.orchestrator.progress_callback = record_progress

        report = await self.orchestrator.import_batch(
            [make_record(f'0xC/{i}') for i in range(3)], ACTOR
        )

        self.assertEqual(progress, [(i, BatchStatus.RUNNING) for i in (1, 2, 3)])
        self.assertIsNone(self.orchestrator.get_batch_progress(report.batch_id))

    async def test_progress_callback_errors_are_ignored(self):
        def broken_callback(report):
            raise RuntimeError("ui closed")

        self.orchestrator.progress_callback = broken_callback

        report = await self.orchestrator.import_batch([make_record()], ACTOR)

        self.assertEqual(report.successful_items, 1)

    async def test_statistics(self):
        await self.orchestrator.import_batch(
            [make_record('0xC/1'), make_record('0xC/1')], ACTOR
        )

        stats = self.orchestrator.get_statistics()
        self.assertEqual(stats['total_batches_processed'], 1)
        self.assertEqual(stats['total_items_processed'], 2)
        self.assertEqual(stats['total_failed_items'], 1)
        self.assertEqual(stats['success_rate'], 50.0)
        self.assertEqual(stats['active_batches'], 0)
        self.assertEqual(stats['configuration'], {'max_batch_size': 5})

    def test_configuration_from_config(self):
        config = BatchConfiguration.from_config(make_config(max_batch_size=7))
        self.assertEqual(config.max_batch_size, 7)
