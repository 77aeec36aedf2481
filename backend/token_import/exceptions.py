"""
Error taxonomy for the token import engine.

Import failures carry an ImportErrorCode so they can travel either as a
failed ImportResult or as an exception. Collaborator errors (RegistryError
and subclasses) are raised by destination and account registry clients and
are converted into import failures by the importer.
"""

from enum import Enum
from typing import Optional


class ImportErrorCode(Enum):
    """Failure classification for import results."""
    INVALID_INPUT = "invalid_input"
    ALREADY_IMPORTED = "already_imported"
    PARENT_NOT_FOUND = "parent_not_found"
    DESTINATION_REJECTED = "destination_rejected"
    AUTHORIZATION_REQUIRED = "authorization_required"
    IMPORT_FAILED = "import_failed"


class TokenImportError(Exception):
    """Base class for import engine errors."""

    code = ImportErrorCode.IMPORT_FAILED

    def __init__(self, reason: str, origin_tag: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.origin_tag = origin_tag


class InvalidInputError(TokenImportError):
    """Caller error: zero address, empty URI, royalty out of range, bad batch size."""
    code = ImportErrorCode.INVALID_INPUT


class AlreadyImportedError(TokenImportError):
    """The origin tag has already been admitted for the destination registry."""
    code = ImportErrorCode.ALREADY_IMPORTED


class ParentNotFoundError(TokenImportError):
    """The parent token named by a nested source tag is not in the destination registry."""
    code = ImportErrorCode.PARENT_NOT_FOUND


class DestinationRejectedError(TokenImportError):
    """The destination registry refused the mint."""
    code = ImportErrorCode.DESTINATION_REJECTED


class AuthorizationRequiredError(TokenImportError):
    """An administrative operation was attempted by a non-administrator."""
    code = ImportErrorCode.AUTHORIZATION_REQUIRED


ERROR_CLASSES = {
    cls.code: cls
    for cls in (
        TokenImportError,
        InvalidInputError,
        AlreadyImportedError,
        ParentNotFoundError,
        DestinationRejectedError,
        AuthorizationRequiredError,
    )
}


class RegistryError(Exception):
    """A destination or account registry call failed."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class MintRejectedError(RegistryError):
    """The destination registry rejected a mint request."""


class RegistryUnavailableError(RegistryError):
    """The registry could not be reached or did not answer."""
