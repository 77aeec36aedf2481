"""
Single-Record Importer.

Imports one ImportRecord into the destination registry: validate, reserve
the origin tag, resolve the nested-ownership recipient when requested, mint,
and commit the admission together with the actor's statistics. Each import
either commits fully or leaves the Dedup Registry untouched.
"""

from typing import Any, Callable, Dict, List, Optional

import structlog

from .account_resolver import NestedAccountResolver
from .dedup_registry import DedupRegistry
from .import_validator import ImportValidator
from .origin_lookup import OriginLookup
from .records import EventType, ImportEvent, ImportRecord, ImportResult
from ..clients.base import DestinationRegistry
from ..config import get_import_config
from ..exceptions import ImportErrorCode, ParentNotFoundError, RegistryError
from ..logging_utils import LogLevel, OperationType, log_import_event, log_import_operation

logger = structlog.get_logger(__name__)

EventListener = Callable[[ImportEvent], None]

MINT_REJECTED_PREFIX = "Destination registry rejected mint: "


def notify_listeners(listeners: List[EventListener], event: ImportEvent, log):
    """Deliver an event to every listener; listener errors are logged only."""
    for listener in listeners:
        try:
            listener(event)
        except Exception as e:
            log.error(
                "Import event listener error",
                event_type=event.event_type.value,
                error=str(e)
            )


class SingleRecordImporter:
    """Imports records one at a time into a destination registry."""

    def __init__(
        self,
        registry: DestinationRegistry,
        dedup_registry: DedupRegistry,
        account_resolver: Optional[NestedAccountResolver] = None,
        validator: Optional[ImportValidator] = None,
        origin_lookup: Optional[OriginLookup] = None,
        listeners: Optional[List[EventListener]] = None,
        config: Dict[str, Any] = None
    ):
        self.config = config or get_import_config()
        self.registry = registry
        self.dedup_registry = dedup_registry
        self.account_resolver = account_resolver
        self.origin_lookup = origin_lookup or OriginLookup(registry, dedup_registry, self.config)
        self.validator = validator or ImportValidator(
            registry,
            dedup_registry,
            origin_lookup=self.origin_lookup,
            account_resolver=account_resolver,
            config=self.config
        )
        self.listeners = list(listeners or [])
        self.logger = logger.bind(component="SingleRecordImporter", registry=registry.address)

    @log_import_operation(OperationType.TOKEN_IMPORT, "import_record")
    async def import_record(self, record: ImportRecord, actor: str) -> ImportResult:
        """
        Import one record on behalf of actor.

        Validation failures, a lost reservation and a missing parent return a
        failed result without touching any state. A rejected mint counts as
        a failed import for the actor. The reservation is released on every
        path that does not commit; unexpected errors then propagate.
        """
        validation = await self.validator.validate(record)
        if not validation.is_valid:
            return self._failed(ImportResult.from_validation(validation))

        tag = record.origin_tag
        if not await self.dedup_registry.reserve(self.registry.address, tag):
            return self._failed(ImportResult.failed(
                tag,
                f"Token already imported or being imported: {tag}",
                ImportErrorCode.ALREADY_IMPORTED
            ))

        committed = False
        try:
            recipient = record.recipient
            if record.nested_source_tag:
                try:
                    recipient = await self._resolve_nested_recipient(record.nested_source_tag)
                except ParentNotFoundError as e:
                    return self._failed(ImportResult.failed(
                        tag, e.reason, ImportErrorCode.PARENT_NOT_FOUND
                    ))

            try:
                token_id = await self.registry.mint(
                    recipient,
                    record.metadata_uri,
                    record.royalty_rate,
                    record.soul_bound,
                    record.creator,
                    tag
                )
            except RegistryError as e:
                await self.dedup_registry.record_failure(actor)
                return self._failed(ImportResult.failed(
                    tag, f"{MINT_REJECTED_PREFIX}{e.reason}", ImportErrorCode.DESTINATION_REJECTED
                ))

            await self.dedup_registry.commit_import(self.registry.address, tag, actor, token_id)
            committed = True
        finally:
            if not committed:
                await self.dedup_registry.release(self.registry.address, tag)

        result = ImportResult.succeeded(tag, token_id, recipient)
        log_import_event(
            "imported", tag, self.registry.address,
            {'token_id': token_id, 'recipient': recipient, 'actor': actor}
        )
        self._emit(ImportEvent(EventType.TOKEN_IMPORTED, {
            'origin_tag': tag,
            'token_id': token_id,
            'recipient': recipient,
            'actor': actor,
        }))
        return result

    async def _resolve_nested_recipient(self, parent_tag: str) -> str:
        parent_index = await self.origin_lookup.find_parent(parent_tag)
        account = await self.account_resolver.resolve_or_create(self.registry.address, parent_index)
        self.logger.info(
            "Resolved nested-ownership recipient",
            parent_tag=parent_tag,
            parent_index=parent_index,
            account=account
        )
        return account

    def _failed(self, result: ImportResult) -> ImportResult:
        log_import_event(
            "failed", result.origin_tag, self.registry.address,
            {'error_code': result.error_code.value, 'reason': result.reason},
            level=LogLevel.WARNING
        )
        self._emit(ImportEvent(EventType.IMPORT_FAILED, {
            'origin_tag': result.origin_tag,
            'error_code': result.error_code.value,
            'reason': result.reason,
        }))
        return result

    def _emit(self, event: ImportEvent):
        notify_listeners(self.listeners, event, self.logger)
