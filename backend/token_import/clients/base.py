"""
Collaborator contracts consumed by the import engine.

Implementations talk to the destination registry (the collection that mints
imported tokens) and to the nested-ownership account registry. Failures are
reported with RegistryError subclasses.
"""

from abc import ABC, abstractmethod


class DestinationRegistry(ABC):
    """Append-only token collection that receives imported tokens."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Registry identity (contract address)."""

    @abstractmethod
    async def mint(
        self,
        recipient: str,
        metadata_uri: str,
        royalty_rate: int,
        soul_bound: bool,
        creator: str,
        origin_tag: str
    ) -> int:
        """
        Mint a token and return its new token id.

        Raises:
            MintRejectedError: the registry refused the mint
            RegistryUnavailableError: the registry could not be reached
        """

    @abstractmethod
    async def read_origin_tag(self, index: int) -> str:
        """
        Read the origin tag stored for a token index.

        Raises:
            RegistryError: the token does not exist or was burned
        """

    @abstractmethod
    async def read_total_count(self) -> int:
        """
        Read the highest token index ever minted.

        Raises:
            RegistryUnavailableError: the count could not be read
        """


class AccountRegistry(ABC):
    """Nested-ownership (token bound) account registry."""

    @abstractmethod
    async def derive_address(
        self,
        implementation: str,
        chain_id: int,
        token_contract: str,
        token_id: int,
        salt: int
    ) -> str:
        """Deterministically derive the account address. No side effects."""

    @abstractmethod
    async def materialize(
        self,
        implementation: str,
        chain_id: int,
        token_contract: str,
        token_id: int,
        salt: int
    ) -> str:
        """Create the account if it does not exist yet and return its address."""
