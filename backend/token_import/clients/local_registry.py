"""
In-process registry implementations.

LocalDestinationRegistry and LocalAccountRegistry keep their state in memory.
They back dry runs of an import plan and the test suite, and mirror the
behaviour of the on-chain collection and account registry: token ids start
at 1, burned tokens can no longer be read, and account creation is
idempotent.
"""

import hashlib
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import structlog

from .base import AccountRegistry, DestinationRegistry
from ..addresses import is_usable_address, normalize_address
from ..exceptions import MintRejectedError, RegistryError

logger = structlog.get_logger(__name__)


@dataclass
class LocalToken:
    token_id: int
    owner: str
    metadata_uri: str
    royalty_rate: int
    soul_bound: bool
    creator: str
    origin_tag: str


class LocalDestinationRegistry(DestinationRegistry):
    """In-memory destination collection."""

    def __init__(self, address: str):
        self._address = address
        self._tokens: Dict[int, LocalToken] = {}
        self._next_token_id = 1
        self._lock = threading.Lock()
        self.paused = False
        self.logger = logger.bind(component="LocalDestinationRegistry", registry=address)

    @property
    def address(self) -> str:
        return self._address

    async def mint(self, recipient, metadata_uri, royalty_rate, soul_bound, creator, origin_tag) -> int:
        if self.paused:
            raise MintRejectedError("Pausable: paused")
        if not is_usable_address(recipient):
            raise MintRejectedError("ERC721: mint to the zero address")
        if royalty_rate > 100:
            raise MintRejectedError("Royalty rate exceeds 100")

        with self._lock:
            token_id = self._next_token_id
            self._next_token_id += 1
            self._tokens[token_id] = LocalToken(
                token_id=token_id,
                owner=recipient,
                metadata_uri=metadata_uri,
                royalty_rate=royalty_rate,
                soul_bound=soul_bound,
                creator=creator,
                origin_tag=origin_tag,
            )

        self.logger.debug("Token minted", token_id=token_id, origin_tag=origin_tag)
        return token_id

    async def read_origin_tag(self, index: int) -> str:
        token = self._tokens.get(index)
        if token is None:
            raise RegistryError(f"ERC721: invalid token ID {index}")
        return token.origin_tag

    async def read_total_count(self) -> int:
        return self._next_token_id - 1

    def burn(self, token_id: int):
        with self._lock:
            if self._tokens.pop(token_id, None) is None:
                raise RegistryError(f"ERC721: invalid token ID {token_id}")

    def get_token(self, token_id: int) -> Optional[LocalToken]:
        return self._tokens.get(token_id)

    def owner_of(self, token_id: int) -> str:
        token = self._tokens.get(token_id)
        if token is None:
            raise RegistryError(f"ERC721: invalid token ID {token_id}")
        return token.owner

    @property
    def token_count(self) -> int:
        return len(self._tokens)


class LocalAccountRegistry(AccountRegistry):
    """
    In-memory nested-ownership account registry.

    Addresses are the last 20 bytes of a SHA-256 digest over the registry
    address and the packed parameter tuple, so they are stable for a given
    registry and tuple.
    """

    def __init__(self, address: str):
        self.address = address
        self.accounts: Dict[str, Tuple[str, int, str, int, int]] = {}
        self.creations = 0
        self._lock = threading.Lock()
        self.logger = logger.bind(component="LocalAccountRegistry", registry=address)

    def _derive(self, implementation: str, chain_id: int, token_contract: str,
                token_id: int, salt: int) -> str:
        packed = b''.join([
            bytes.fromhex(normalize_address(self.address)[2:]),
            bytes.fromhex(normalize_address(implementation)[2:]),
            chain_id.to_bytes(32, 'big'),
            bytes.fromhex(normalize_address(token_contract)[2:]),
            token_id.to_bytes(32, 'big'),
            salt.to_bytes(32, 'big'),
        ])
        return '0x' + hashlib.sha256(packed).digest()[-20:].hex()

    async def derive_address(self, implementation, chain_id, token_contract, token_id, salt) -> str:
        return self._derive(implementation, chain_id, token_contract, token_id, salt)

    async def materialize(self, implementation, chain_id, token_contract, token_id, salt) -> str:
        address = self._derive(implementation, chain_id, token_contract, token_id, salt)
        with self._lock:
            if address not in self.accounts:
                self.accounts[address] = (implementation, chain_id, token_contract, token_id, salt)
                self.creations += 1
                self.logger.debug("Account created", account=address, token_id=token_id)
        return address

    def is_materialized(self, address: str) -> bool:
        return address in self.accounts
