from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Final

ZERO_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"


class ContractStandard(str, Enum):
    ERC20 = "ERC20"
    ERC721 = "ERC721"
    ERC1155 = "ERC1155"


class TransferType(str, Enum):
    MINT = "MINT"
    BURN = "BURN"
    TRANSFER = "TRANSFER"


class TransferDirection(str, Enum):
    FROM = "From"
    TO = "To"
    OPERATOR = "Operator"


class FTokenBalanceAction(str, Enum):
    ADD = "add"
    SUB = "sub"


class TokenEventKind(str, Enum):
    """
    Token-standard events understood by the indexer.

    ERC20_TRANSFER and ERC721_TRANSFER share topic0; they are told apart
    by the shape of the log (value in data vs tokenId in topic3).
    """

    ERC20_TRANSFER = "erc20_transfer"
    ERC721_TRANSFER = "erc721_transfer"
    ERC1155_TRANSFER_SINGLE = "erc1155_transfer_single"
    ERC1155_TRANSFER_BATCH = "erc1155_transfer_batch"
    ERC1155_URI = "erc1155_uri"


@dataclass(frozen=True)
class EvmLog:
    """
    Single EVM log as delivered by the log source.

    topics[0] is topic0 (event signature hash); address is the emitting contract.
    """

    id: str
    index_in_block: int
    tx_hash: str
    address: str
    topics: tuple[bytes, ...]
    data: bytes

    def topic(self, position: int) -> bytes | None:
        if position < len(self.topics):
            return self.topics[position]
        return None


@dataclass(frozen=True)
class Block:
    height: int
    timestamp: datetime
    logs: tuple[EvmLog, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EventContext:
    """
    Ambient block/event context handed to resolvers for one log.
    """

    block_height: int
    block_timestamp: datetime
    event_id: str
    event_index: int
    tx_hash: str
    contract_address: str

    @classmethod
    def from_log(cls, block: Block, log: EvmLog) -> "EventContext":
        return cls(
            block_height=block.height,
            block_timestamp=block.timestamp,
            event_id=log.id,
            event_index=log.index_in_block,
            tx_hash=log.tx_hash,
            contract_address=log.address.lower(),
        )


@dataclass(frozen=True)
class DecodedTokenEvent:
    kind: TokenEventKind
    payload: dict[str, Any]


@dataclass(frozen=True)
class TokenDetails:
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    uri: str | None = None
