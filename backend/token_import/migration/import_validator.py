"""
Validation Engine for token imports.

Precondition checks run against a candidate ImportRecord before anything is
minted. Validation never mutates the Dedup Registry or the destination
registry, so it can be run over a whole batch as a pre-flight check.
"""

from typing import Any, Dict, List, Optional, Sequence

import structlog

from .account_resolver import NestedAccountResolver
from .dedup_registry import DedupRegistry
from .origin_lookup import OriginLookup
from .records import ImportRecord, ValidationResult
from ..addresses import is_usable_address
from ..clients.base import DestinationRegistry
from ..config import get_import_config
from ..exceptions import ImportErrorCode
from ..logging_utils import LogLevel, OperationType, log_import_operation

logger = structlog.get_logger(__name__)

MAX_ROYALTY_RATE = 100


class ImportValidator:
    """
    Validates import records for one destination registry.

    Checks run in a fixed order and stop at the first failure:
    registry identity, metadata URI, recipient and creator, royalty rate,
    origin tag and nested-ownership settings, Dedup Registry admission,
    and finally the origin tags already stored in the destination registry.
    The last check is independent of the Dedup Registry because the
    destination registry can be written to by other paths.
    """

    def __init__(
        self,
        registry: DestinationRegistry,
        dedup_registry: DedupRegistry,
        origin_lookup: Optional[OriginLookup] = None,
        account_resolver: Optional[NestedAccountResolver] = None,
        config: Dict[str, Any] = None
    ):
        self.config = config or get_import_config()
        self.registry = registry
        self.dedup_registry = dedup_registry
        self.origin_lookup = origin_lookup or OriginLookup(registry, dedup_registry, self.config)
        self.account_resolver = account_resolver
        self.logger = logger.bind(component="ImportValidator")

        self.validation_stats = {
            'total_validations': 0,
            'successful_validations': 0,
            'failed_validations': 0,
        }

    def _check_input(self, record: ImportRecord) -> Optional[ValidationResult]:
        tag = record.origin_tag

        def invalid(reason: str) -> ValidationResult:
            return ValidationResult.failed(reason, ImportErrorCode.INVALID_INPUT, tag)

        if not is_usable_address(self.registry.address):
            return invalid("Invalid destination registry address")
        if not record.metadata_uri:
            return invalid("Metadata URI is empty")
        if not is_usable_address(record.recipient):
            return invalid("Invalid recipient address")
        if not is_usable_address(record.creator):
            return invalid("Invalid creator address")
        if record.royalty_rate < 0 or record.royalty_rate > MAX_ROYALTY_RATE:
            return invalid(f"Royalty rate must be between 0 and {MAX_ROYALTY_RATE}")
        if not tag:
            return invalid("Origin tag is empty")
        if record.nested_source_tag:
            if self.account_resolver is None or not self.account_resolver.is_configured:
                return invalid("Nested ownership requested but no account implementation is configured")
            if record.nested_source_tag == tag:
                return invalid("Nested source tag cannot reference the record itself")
        return None

    @log_import_operation(OperationType.VALIDATION, "validate", level=LogLevel.DEBUG)
    async def validate(self, record: ImportRecord) -> ValidationResult:
        """
        Validate a single import record.

        Args:
            record: Record to validate

        Returns:
            ValidationResult; absence of duplicates is reported as a valid result
        """
        self.validation_stats['total_validations'] += 1
        result = self._check_input(record)

        if result is None:
            result = await self._check_duplicates(record)

        if result.is_valid:
            self.validation_stats['successful_validations'] += 1
        else:
            self.validation_stats['failed_validations'] += 1
            self.logger.info(
                "Import record rejected",
                origin_tag=record.origin_tag,
                error_code=result.error_code.value,
                reason=result.reason
            )

        return result

    async def _check_duplicates(self, record: ImportRecord) -> ValidationResult:
        tag = record.origin_tag

        if await self.dedup_registry.is_admitted(self.registry.address, tag):
            return ValidationResult.failed(
                f"Token already imported: {tag}", ImportErrorCode.ALREADY_IMPORTED, tag
            )

        existing_index = await self.origin_lookup.find_for_duplicate_check(tag)
        if existing_index is not None:
            return ValidationResult.failed(
                f"Token already exists in destination registry at index {existing_index}: {tag}",
                ImportErrorCode.ALREADY_IMPORTED,
                tag
            )

        return ValidationResult.ok(tag)

    async def validate_batch(self, records: Sequence[ImportRecord]) -> List[ValidationResult]:
        """
        Validate every record of a batch without mutating anything.

        A tag repeated inside the batch is reported as a duplicate on every
        occurrence after the first.
        """
        results = []
        seen_tags = set()

        for record in records:
            if record.origin_tag and record.origin_tag in seen_tags:
                self.validation_stats['total_validations'] += 1
                self.validation_stats['failed_validations'] += 1
                results.append(ValidationResult.failed(
                    f"Duplicate origin tag within batch: {record.origin_tag}",
                    ImportErrorCode.ALREADY_IMPORTED,
                    record.origin_tag
                ))
                continue

            seen_tags.add(record.origin_tag)
            results.append(await self.validate(record))

        self.logger.info(
            "Batch pre-flight validation completed",
            total=len(records),
            valid=sum(1 for r in results if r.is_valid)
        )
        return results

    def get_validation_statistics(self) -> Dict[str, Any]:
        return dict(self.validation_stats)
