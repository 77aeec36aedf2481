"""
Origin Lookup for the destination registry.

Finds the token whose stored origin tag matches a target tag by scanning
token indices 1..total_count in ascending order. The destination registry
has no origin index of its own, so the scan is linear; when the Dedup
Registry knows the token id it minted for a tag, that index is checked
before scanning.
"""

from typing import Any, Dict, Optional

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .dedup_registry import DedupRegistry
from .records import origin_tag_hash
from ..clients.base import DestinationRegistry
from ..config import get_import_config
from ..exceptions import ParentNotFoundError, RegistryError, RegistryUnavailableError
from ..logging_utils import LogLevel, OperationType, log_import_operation

logger = structlog.get_logger(__name__)


class OriginLookup:
    """Locates destination tokens by origin tag."""

    def __init__(
        self,
        registry: DestinationRegistry,
        dedup_registry: Optional[DedupRegistry] = None,
        config: Dict[str, Any] = None
    ):
        self.config = config or get_import_config()
        self.registry = registry
        self.dedup_registry = dedup_registry
        self.logger = logger.bind(component="OriginLookup", registry=registry.address)

        lookup_config = self.config['lookup']
        self.read_retry_attempts = max(1, lookup_config['read_retry_attempts'])
        self.read_retry_wait = lookup_config['read_retry_wait_seconds']
        self.use_admission_index = lookup_config['use_admission_index'] and dedup_registry is not None

    async def read_total_count(self) -> int:
        """Read the registry's total count, retrying while it is unavailable."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.read_retry_attempts),
            wait=wait_exponential(multiplier=self.read_retry_wait, max=10),
            retry=retry_if_exception_type(RegistryUnavailableError),
            reraise=True,
        ):
            with attempt:
                return await self.registry.read_total_count()

    @log_import_operation(OperationType.ORIGIN_LOOKUP, "find_by_origin_tag", level=LogLevel.DEBUG)
    async def find_by_origin_tag(self, origin_tag: str) -> Optional[int]:
        """
        Find the first token index whose stored origin tag equals origin_tag.

        Unreadable indices (burned or absent tokens) are skipped.

        Returns:
            Token index, or None if no token carries the tag

        Raises:
            RegistryError: the total count could not be read
        """
        target_hash = origin_tag_hash(origin_tag)

        if self.use_admission_index:
            index = await self._check_admission_index(origin_tag, target_hash)
            if index is not None:
                return index

        total_count = await self.read_total_count()

        for index in range(1, total_count + 1):
            try:
                stored_tag = await self.registry.read_origin_tag(index)
            except RegistryError:
                continue
            if origin_tag_hash(stored_tag) == target_hash:
                return index

        return None

    async def _check_admission_index(self, origin_tag: str, target_hash: str) -> Optional[int]:
        token_id = await self.dedup_registry.admitted_token_id(self.registry.address, origin_tag)
        if token_id is None:
            return None
        try:
            stored_tag = await self.registry.read_origin_tag(token_id)
        except RegistryError:
            return None
        if origin_tag_hash(stored_tag) == target_hash:
            return token_id
        return None

    async def find_for_duplicate_check(self, origin_tag: str) -> Optional[int]:
        """Like find_by_origin_tag, but an unreadable registry counts as not found."""
        try:
            return await self.find_by_origin_tag(origin_tag)
        except RegistryError as e:
            self.logger.warning(
                "Total count unavailable, skipping registry duplicate check",
                origin_tag=origin_tag,
                error=e.reason
            )
            return None

    async def find_parent(self, origin_tag: str) -> int:
        """
        Find the token index of a nested-ownership parent.

        Raises:
            ParentNotFoundError: no token carries the tag, or the registry
                could not be scanned
        """
        try:
            index = await self.find_by_origin_tag(origin_tag)
        except RegistryError as e:
            raise ParentNotFoundError(
                f"Cannot locate parent token {origin_tag}: {e.reason}",
                origin_tag=origin_tag
            ) from e

        if index is None:
            raise ParentNotFoundError(f"Parent token not found: {origin_tag}", origin_tag=origin_tag)

        return index
