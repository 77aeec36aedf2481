"""
Data structures for token import records and their outcomes.
"""

import hashlib
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import ERROR_CLASSES, ImportErrorCode, TokenImportError


def origin_tag_hash(origin_tag: str) -> str:
    """SHA-256 digest of an origin tag, used for equality checks and storage keys."""
    return hashlib.sha256(origin_tag.encode('utf-8')).hexdigest()


@dataclass(frozen=True)
class ImportRecord:
    """
    A token to import into the destination registry.

    origin_tag identifies the source token as <sourceCollection>/<sourceTokenId>.
    When nested_source_tag is set, the token is minted to the nested-ownership
    account of the parent token carrying that origin tag instead of recipient.
    """

    metadata_uri: str
    recipient: str
    creator: str
    origin_tag: str
    soul_bound: bool = False
    royalty_rate: int = 0
    nested_source_tag: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImportRecord':
        """
        Build a record from decoded JSON.

        Raises:
            ValueError: soul_bound is not a boolean or royalty_rate is not an integer
        """
        soul_bound = data.get('soul_bound', False)
        if not isinstance(soul_bound, bool):
            raise ValueError(f"soul_bound must be a boolean, got {soul_bound!r}")

        return cls(
            metadata_uri=data.get('metadata_uri', ''),
            recipient=data.get('recipient', ''),
            creator=data.get('creator', ''),
            origin_tag=data.get('origin_tag', ''),
            soul_bound=soul_bound,
            royalty_rate=int(data.get('royalty_rate', 0)),
            nested_source_tag=data.get('nested_source_tag') or None,
        )


@dataclass
class ValidationResult:
    """Outcome of validating one import record."""

    is_valid: bool = True
    reason: str = ""
    error_code: Optional[ImportErrorCode] = None
    origin_tag: str = ""

    @classmethod
    def ok(cls, origin_tag: str = "") -> 'ValidationResult':
        return cls(origin_tag=origin_tag)

    @classmethod
    def failed(cls, reason: str, error_code: ImportErrorCode,
               origin_tag: str = "") -> 'ValidationResult':
        return cls(is_valid=False, reason=reason, error_code=error_code, origin_tag=origin_tag)


@dataclass
class ImportResult:
    """Outcome of importing one record. Failed results have no new_token_id."""

    origin_tag: str
    success: bool
    new_token_id: Optional[int] = None
    reason: str = ""
    error_code: Optional[ImportErrorCode] = None
    recipient: Optional[str] = None

    @classmethod
    def succeeded(cls, origin_tag: str, new_token_id: int, recipient: str) -> 'ImportResult':
        return cls(origin_tag=origin_tag, success=True, new_token_id=new_token_id,
                   recipient=recipient)

    @classmethod
    def failed(cls, origin_tag: str, reason: str, error_code: ImportErrorCode) -> 'ImportResult':
        return cls(origin_tag=origin_tag, success=False, reason=reason, error_code=error_code)

    @classmethod
    def from_validation(cls, validation: ValidationResult) -> 'ImportResult':
        return cls.failed(validation.origin_tag, validation.reason, validation.error_code)

    def raise_for_failure(self):
        """Raise the TokenImportError matching error_code if the import failed."""
        if self.success:
            return
        error_class = ERROR_CLASSES.get(self.error_code, TokenImportError)
        raise error_class(self.reason, origin_tag=self.origin_tag)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['error_code'] = self.error_code.value if self.error_code else None
        return data


@dataclass
class ImportStats:
    """Per-actor import counters."""

    total_imported: int = 0
    total_failed: int = 0
    last_import_time: Optional[datetime] = None


class EventType(Enum):
    """Notifications emitted by the importer and the batch orchestrator."""
    BATCH_STARTED = "batch_started"
    BATCH_COMPLETED = "batch_completed"
    TOKEN_IMPORTED = "token_imported"
    IMPORT_FAILED = "import_failed"


@dataclass
class ImportEvent:
    event_type: EventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
