"""
Administrative operations for the import engine.

All operations require the caller to be the current administrator stored
in the Dedup Registry. They do not take part in the import algorithm.
"""

from typing import Optional

import structlog

from .dedup_registry import DedupRegistry
from ..addresses import is_usable_address, normalize_address
from ..exceptions import AuthorizationRequiredError, InvalidInputError
from ..logging_utils import LogLevel, OperationType, log_import_event, log_import_operation

logger = structlog.get_logger(__name__)


class ImportAdministration:
    """Guarded administrative setters over a Dedup Registry."""

    def __init__(self, dedup_registry: DedupRegistry):
        self.dedup_registry = dedup_registry
        self.logger = logger.bind(component="ImportAdministration")

    async def _require_admin(self, caller: str):
        admin = await self.dedup_registry.get_admin()
        if not admin or not caller or normalize_address(caller) != admin:
            self.logger.warning("Unauthorized administrative call", caller=caller)
            raise AuthorizationRequiredError(f"Caller {caller} is not the administrator")

    async def get_admin(self) -> Optional[str]:
        return await self.dedup_registry.get_admin()

    @log_import_operation(OperationType.ADMINISTRATION, "transfer_admin")
    async def transfer_admin(self, caller: str, new_admin: str):
        """Hand the administrator role to new_admin."""
        await self._require_admin(caller)
        if not is_usable_address(new_admin):
            raise InvalidInputError(f"Invalid administrator address: {new_admin}")
        await self.dedup_registry.set_admin(new_admin)
        self.logger.info("Administrator transferred", previous=caller, new_admin=new_admin)

    @log_import_operation(OperationType.ADMINISTRATION, "clear_admission")
    async def clear_admission(self, caller: str, registry_address: str, origin_tag: str) -> bool:
        """
        Remove a mistaken admission so the origin tag can be imported again.

        Also frees a reservation stuck by an import that died before it
        could commit or release.

        Returns:
            True if the tag was admitted or reserved and has been cleared
        """
        await self._require_admin(caller)
        cleared = await self.dedup_registry.clear_admission(registry_address, origin_tag)
        log_import_event(
            "admission_cleared" if cleared else "admission_not_found",
            origin_tag,
            registry_address,
            {'caller': caller},
            level=LogLevel.WARNING
        )
        return cleared

    @staticmethod
    def check_payment(amount: int):
        """
        Raises:
            InvalidInputError: the amount is negative
        """
        if amount < 0:
            raise InvalidInputError("Payment amount cannot be negative")

    async def receive_payment(self, amount: int) -> int:
        """Credit value sent along with an import; returns the new balance."""
        self.check_payment(amount)
        if amount == 0:
            return await self.dedup_registry.balance()
        return await self.dedup_registry.credit(amount)

    @log_import_operation(OperationType.ADMINISTRATION, "withdraw")
    async def withdraw(self, caller: str, recipient: str) -> int:
        """
        Withdraw the whole engine balance to recipient.

        Returns:
            Amount withdrawn
        """
        await self._require_admin(caller)
        if not is_usable_address(recipient):
            raise InvalidInputError(f"Invalid withdrawal recipient: {recipient}")
        amount = await self.dedup_registry.drain_balance()
        self.logger.info("Balance withdrawn", recipient=recipient, amount=amount)
        return amount
