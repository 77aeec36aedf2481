"""
Nested-Ownership Account Resolver.

Derives the account owned by a destination token (ERC-6551 style token
bound account) from the tuple (implementation, chain_id, token_contract,
token_id, salt), and optionally makes sure the account exists.
"""

from dataclasses import astuple, dataclass
from typing import Any, Dict, Optional

import structlog

from ..addresses import is_usable_address
from ..clients.base import AccountRegistry
from ..config import get_import_config
from ..logging_utils import OperationType, log_operation_context

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NestedAccountParams:
    implementation: str
    chain_id: int
    token_contract: str
    token_id: int
    salt: int = 0


class NestedAccountResolver:
    """
    Resolves nested-ownership accounts through an account registry.

    compute() is pure and safe for validation and dry runs.
    resolve_or_create() also materializes the account; materializing an
    existing account is a no-op.
    """

    def __init__(
        self,
        account_registry: AccountRegistry,
        implementation: Optional[str] = None,
        chain_id: Optional[int] = None,
        salt: Optional[int] = None,
        config: Dict[str, Any] = None
    ):
        self.config = config or get_import_config()
        nested_config = self.config['nested_account']

        self.account_registry = account_registry
        self.implementation = implementation if implementation is not None else nested_config['implementation']
        self.chain_id = chain_id if chain_id is not None else self.config['chain_id']
        self.salt = salt if salt is not None else nested_config['salt']
        self.logger = logger.bind(component="NestedAccountResolver")

    @property
    def is_configured(self) -> bool:
        """True when an implementation address is available."""
        return is_usable_address(self.implementation)

    def params_for(self, token_contract: str, token_id: int) -> NestedAccountParams:
        return NestedAccountParams(
            implementation=self.implementation,
            chain_id=self.chain_id,
            token_contract=token_contract,
            token_id=token_id,
            salt=self.salt,
        )

    async def compute(self, token_contract: str, token_id: int) -> str:
        """Derive the account address for a token without side effects."""
        params = self.params_for(token_contract, token_id)
        return await self.account_registry.derive_address(*astuple(params))

    async def resolve_or_create(self, token_contract: str, token_id: int) -> str:
        """Derive the account address and make sure the account exists."""
        params = self.params_for(token_contract, token_id)

        with log_operation_context(
            OperationType.ACCOUNT_RESOLUTION,
            "resolve_or_create",
            {'token_contract': token_contract, 'token_id': token_id}
        ):
            address = await self.account_registry.derive_address(*astuple(params))
            created = await self.account_registry.materialize(*astuple(params))

        if created.lower() != address.lower():
            self.logger.warning(
                "Materialized account differs from derived address",
                derived=address,
                materialized=created,
                token_id=token_id
            )

        return address
