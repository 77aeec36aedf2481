"""
Unit Tests for the Single-Record Importer

Covers the commit/rollback behaviour of a single import, nested-ownership
recipients, statistics and concurrent imports of the same origin tag.
"""

import asyncio
from unittest.mock import AsyncMock, patch

from django.test import SimpleTestCase

from ..exceptions import (
    AlreadyImportedError,
    DestinationRejectedError,
    ImportErrorCode,
    MintRejectedError,
)
from ..migration.account_resolver import NestedAccountResolver
from ..migration.dedup_registry import InMemoryDedupRegistry
from ..migration.importer import MINT_REJECTED_PREFIX, SingleRecordImporter
from ..migration.records import EventType
from .helpers import ACTOR, CREATOR, IMPLEMENTATION_ADDRESS, RECIPIENT, make_config, make_record, make_registries


class TestSingleRecordImporter(SimpleTestCase):
    """Test cases for SingleRecordImporter."""

    def setUp(self):
        self.config = make_config()
        self.registry, self.accounts = make_registries()
        self.dedup = InMemoryDedupRegistry()
        self.events = []
        self.importer = SingleRecordImporter(
            self.registry,
            self.dedup,
            account_resolver=NestedAccountResolver(self.accounts, config=self.config),
            listeners=[self.events.append],
            config=self.config
        )

    async def test_successful_import(self):
        result = await self.importer.import_record(make_record(), ACTOR)

        self.assertTrue(result.success)
        self.assertEqual(result.new_token_id, 1)
        self.assertEqual(result.recipient, RECIPIENT)
        self.assertTrue(await self.dedup.is_admitted(self.registry.address, '0xC/1'))

        token = self.registry.get_token(1)
        self.assertEqual(token.origin_tag, '0xC/1')
        self.assertEqual(token.metadata_uri, 'ipfs://x')
        self.assertEqual(token.royalty_rate, 10)
        self.assertEqual(token.creator, CREATOR)
        self.assertFalse(token.soul_bound)

        stats = await self.dedup.stats_for(ACTOR)
        self.assertEqual(stats.total_imported, 1)
        self.assertEqual(stats.total_failed, 0)
        self.assertIsNotNone(stats.last_import_time)

        self.assertEqual([e.event_type for e in self.events], [EventType.TOKEN_IMPORTED])

    async def test_validation_failure_mutates_nothing(self):
        result = await self.importer.import_record(make_record(royalty_rate=150), ACTOR)

        self.assertFalse(result.success)
        self.assertIsNone(result.new_token_id)
        self.assertEqual(result.error_code, ImportErrorCode.INVALID_INPUT)
        self.assertEqual(await self.registry.read_total_count(), 0)
        self.assertTrue(await self.dedup.reserve(self.registry.address, '0xC/1'))

        stats = await self.dedup.stats_for(ACTOR)
        self.assertEqual((stats.total_imported, stats.total_failed), (0, 0))
        self.assertEqual([e.event_type for e in self.events], [EventType.IMPORT_FAILED])

    async def test_duplicate_import_is_rejected(self):
        await self.importer.import_record(make_record(), ACTOR)

        result = await self.importer.import_record(make_record(), ACTOR)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, ImportErrorCode.ALREADY_IMPORTED)
        self.assertEqual(await self.registry.read_total_count(), 1)
        with self.assertRaises(AlreadyImportedError):
            result.raise_for_failure()

    async def test_mint_rejection_counts_failure_and_keeps_tag_free(self):
        rejected = AsyncMock(side_effect=MintRejectedError("Caller is not an authorized importer"))

        with patch.object(self.registry, 'mint', rejected):
            result = await self.importer.import_record(make_record(), ACTOR)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, ImportErrorCode.DESTINATION_REJECTED)
        self.assertEqual(
            result.reason, MINT_REJECTED_PREFIX + "Caller is not an authorized importer"
        )
        self.assertFalse(await self.dedup.is_admitted(self.registry.address, '0xC/1'))

        stats = await self.dedup.stats_for(ACTOR)
        self.assertEqual((stats.total_imported, stats.total_failed), (0, 1))

        with self.assertRaises(DestinationRejectedError) as context:
            result.raise_for_failure()
        self.assertIn("not an authorized importer", context.exception.reason)

        retry = await self.importer.import_record(make_record(), ACTOR)
        self.assertTrue(retry.success)

    async def test_unexpected_error_releases_reservation(self):
        with patch.object(self.registry, 'mint', AsyncMock(side_effect=ValueError("boom"))):
            with self.assertRaises(ValueError):
                await self.importer.import_record(make_record(), ACTOR)

        self.assertTrue(await self.dedup.reserve(self.registry.address, '0xC/1'))

    async def test_nested_import_mints_to_parent_account(self):
        parent = await self.importer.import_record(make_record('0xAAA/7'), ACTOR)
        child = await self.importer.import_record(
            make_record('0xBBB/1', nested_source_tag='0xAAA/7'), ACTOR
        )

        expected = await self.accounts.derive_address(
            IMPLEMENTATION_ADDRESS, 1, self.registry.address, parent.new_token_id, 0
        )
        self.assertTrue(child.success)
        self.assertEqual(child.recipient, expected)
        self.assertNotEqual(child.recipient, RECIPIENT)
        self.assertEqual(self.registry.owner_of(child.new_token_id), expected)
        self.assertTrue(self.accounts.is_materialized(expected))

    async def test_nested_account_is_created_once(self):
        await self.importer.import_record(make_record('0xAAA/7'), ACTOR)
        await self.importer.import_record(make_record('0xBBB/1', nested_source_tag='0xAAA/7'), ACTOR)
        await self.importer.import_record(make_record('0xBBB/2', nested_source_tag='0xAAA/7'), ACTOR)

        self.assertEqual(self.accounts.creations, 1)

    async def test_missing_parent(self):
        result = await self.importer.import_record(
            make_record('0xBBB/1', nested_source_tag='0xAAA/7'), ACTOR
        )

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, ImportErrorCode.PARENT_NOT_FOUND)
        self.assertIn('0xAAA/7', result.reason)
        self.assertFalse(await self.dedup.is_admitted(self.registry.address, '0xBBB/1'))
        self.assertEqual(await self.registry.read_total_count(), 0)
        self.assertEqual((await self.dedup.stats_for(ACTOR)).total_failed, 0)

        # Importing the parent first makes the retry succeed
        await self.importer.import_record(make_record('0xAAA/7'), ACTOR)
        retry = await self.importer.import_record(
            make_record('0xBBB/1', nested_source_tag='0xAAA/7'), ACTOR
        )
        self.assertTrue(retry.success)

    async def test_concurrent_imports_of_same_tag(self):
        original_mint = self.registry.mint

        async def slow_mint(*args):
            await asyncio.sleep(0.01)
            return await original_mint(*args)

        with patch.object(self.registry, 'mint', slow_mint):
            results = await asyncio.gather(
                self.importer.import_record(make_record(), ACTOR),
                self.importer.import_record(make_record(), ACTOR),
            )

        self.assertEqual(sorted(r.success for r in results), [False, True])
        failed = next(r for r in results if not r.success)
        self.assertEqual(failed.error_code, ImportErrorCode.ALREADY_IMPORTED)
        self.assertEqual(await self.registry.read_total_count(), 1)
        self.assertEqual((await self.dedup.stats_for(ACTOR)).total_imported, 1)

    async def test_listener_errors_do_not_break_imports(self):
        def broken_listener(event):
            raise RuntimeError("listener down")

        self.importer.listeners.append(broken_listener)

        result = await self.importer.import_record(make_record(), ACTOR)

        self.assertTrue(result.success)
