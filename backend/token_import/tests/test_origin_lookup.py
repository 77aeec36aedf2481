"""
Unit Tests for Origin Lookup
"""

from unittest.mock import AsyncMock, patch

from django.test import SimpleTestCase

from ..exceptions import ParentNotFoundError, RegistryUnavailableError
from ..migration.dedup_registry import InMemoryDedupRegistry
from ..migration.origin_lookup import OriginLookup
from .helpers import CREATOR, RECIPIENT, make_config, make_registries


class TestOriginLookup(SimpleTestCase):
    """Test cases for OriginLookup."""

    def setUp(self):
        self.registry, _ = make_registries()
        self.dedup = InMemoryDedupRegistry()
        self.lookup = OriginLookup(self.registry, self.dedup, make_config())

    async def _mint(self, origin_tag):
        return await self.registry.mint(RECIPIENT, 'ipfs://x', 0, False, CREATOR, origin_tag)

    async def test_empty_registry_returns_none(self):
        self.assertIsNone(await self.lookup.find_by_origin_tag('0xAAA/7'))

    async def test_finds_first_matching_index(self):
        await self._mint('0xAAA/1')
        await self._mint('0xAAA/7')
        await self._mint('0xAAA/7')

        self.assertEqual(await self.lookup.find_by_origin_tag('0xAAA/7'), 2)

    async def test_match_is_exact(self):
        await self._mint('0xAAA/70')
        await self._mint('0xaaa/7')

        self.assertIsNone(await self.lookup.find_by_origin_tag('0xAAA/7'))

    async def test_burned_indices_are_skipped(self):
        await self._mint('0xAAA/7')
        await self._mint('0xAAA/7')
        self.registry.burn(1)

        self.assertEqual(await self.lookup.find_by_origin_tag('0xAAA/7'), 2)

    async def test_admission_index_is_checked_first(self):
        await self._mint('0xAAA/1')
        token_id = await self._mint('0xAAA/2')
        await self.dedup.reserve(self.registry.address, '0xAAA/2')
        await self.dedup.commit_import(self.registry.address, '0xAAA/2', RECIPIENT, token_id)

        with patch.object(self.registry, 'read_total_count', AsyncMock(return_value=2)) as count:
            self.assertEqual(await self.lookup.find_by_origin_tag('0xAAA/2'), 2)
            count.assert_not_awaited()

    async def test_stale_admission_index_falls_back_to_scan(self):
        await self._mint('0xAAA/2')
        await self.dedup.reserve(self.registry.address, '0xAAA/2')
        await self.dedup.commit_import(self.registry.address, '0xAAA/2', RECIPIENT, 1)
        self.registry.burn(1)
        await self._mint('0xAAA/2')

        self.assertEqual(await self.lookup.find_by_origin_tag('0xAAA/2'), 2)

    async def test_total_count_read_is_retried(self):
        await self._mint('0xAAA/7')
        flaky = AsyncMock(side_effect=[RegistryUnavailableError("timeout"), 1])

        with patch.object(self.registry, 'read_total_count', flaky):
            self.assertEqual(await self.lookup.find_by_origin_tag('0xAAA/7'), 1)
        self.assertEqual(flaky.await_count, 2)

    async def test_unreadable_count_is_permissive_for_duplicate_checks(self):
        await self._mint('0xAAA/7')
        down = AsyncMock(side_effect=RegistryUnavailableError("timeout"))

        with patch.object(self.registry, 'read_total_count', down):
            self.assertIsNone(await self.lookup.find_for_duplicate_check('0xAAA/7'))
            with self.assertRaises(RegistryUnavailableError):
                await self.lookup.find_by_origin_tag('0xAAA/7')

    async def test_unreadable_count_is_fatal_for_parent_resolution(self):
        down = AsyncMock(side_effect=RegistryUnavailableError("timeout"))

        with patch.object(self.registry, 'read_total_count', down):
            with self.assertRaises(ParentNotFoundError) as context:
                await self.lookup.find_parent('0xAAA/7')
        self.assertIn("timeout", context.exception.reason)

    async def test_find_parent(self):
        await self._mint('0xAAA/7')

        self.assertEqual(await self.lookup.find_parent('0xAAA/7'), 1)
        with self.assertRaises(ParentNotFoundError):
            await self.lookup.find_parent('0xAAA/8')
