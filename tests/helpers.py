from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from eth_abi import encode
from eth_utils import keccak

from token_indexer.app.domain import ids
from token_indexer.app.domain.errors import StoreError
from token_indexer.app.domain.models import Block, ContractStandard, EvmLog, TokenDetails

ZERO = "0x" + "00" * 20
ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20
CAROL = "0x" + "cc" * 20
OPERATOR = "0x" + "0e" * 20
ERC20_TOKEN = "0x" + "20" * 20
ERC721_TOKEN = "0x" + "72" * 20
ERC1155_TOKEN = "0x" + "11" * 20

TX_HASH = "0x" + "ab" * 32
GENESIS = datetime(2024, 1, 1, tzinfo=timezone.utc)

TRANSFER_TOPIC = keccak(text="Transfer(address,address,uint256)")
TRANSFER_SINGLE_TOPIC = keccak(text="TransferSingle(address,address,address,uint256,uint256)")
TRANSFER_BATCH_TOPIC = keccak(text="TransferBatch(address,address,address,uint256[],uint256[])")
URI_TOPIC = keccak(text="URI(string,uint256)")


def address_topic(address: str) -> bytes:
    return b"\x00" * 12 + bytes.fromhex(address[2:])


def uint_topic(value: int) -> bytes:
    return value.to_bytes(32, "big")


def make_log(
    *,
    block: int,
    index: int,
    contract: str,
    topics: Sequence[bytes],
    data: bytes = b"",
) -> EvmLog:
    return EvmLog(
        id=ids.event_id(block, index),
        index_in_block=index,
        tx_hash=TX_HASH,
        address=contract,
        topics=tuple(topics),
        data=data,
    )


def erc20_transfer(*, sender: str, receiver: str, value: int, block: int = 100, index: int = 0, contract: str = ERC20_TOKEN) -> EvmLog:
    return make_log(
        block=block,
        index=index,
        contract=contract,
        topics=[TRANSFER_TOPIC, address_topic(sender), address_topic(receiver)],
        data=encode(["uint256"], [value]),
    )


def erc721_transfer(*, sender: str, receiver: str, token_id: int, block: int = 100, index: int = 0, contract: str = ERC721_TOKEN) -> EvmLog:
    return make_log(
        block=block,
        index=index,
        contract=contract,
        topics=[TRANSFER_TOPIC, address_topic(sender), address_topic(receiver), uint_topic(token_id)],
    )


def erc1155_transfer_single(
    *,
    operator: str,
    sender: str,
    receiver: str,
    token_id: int,
    value: int,
    block: int = 100,
    index: int = 0,
    contract: str = ERC1155_TOKEN,
) -> EvmLog:
    return make_log(
        block=block,
        index=index,
        contract=contract,
        topics=[TRANSFER_SINGLE_TOPIC, address_topic(operator), address_topic(sender), address_topic(receiver)],
        data=encode(["uint256", "uint256"], [token_id, value]),
    )


def erc1155_transfer_batch(
    *,
    operator: str,
    sender: str,
    receiver: str,
    token_ids: Sequence[int],
    values: Sequence[int],
    block: int = 100,
    index: int = 0,
    contract: str = ERC1155_TOKEN,
) -> EvmLog:
    return make_log(
        block=block,
        index=index,
        contract=contract,
        topics=[TRANSFER_BATCH_TOPIC, address_topic(operator), address_topic(sender), address_topic(receiver)],
        data=encode(["uint256[]", "uint256[]"], [list(token_ids), list(values)]),
    )


def erc1155_uri(*, token_id: int, value: str, block: int = 100, index: int = 0, contract: str = ERC1155_TOKEN) -> EvmLog:
    return make_log(
        block=block,
        index=index,
        contract=contract,
        topics=[URI_TOPIC, uint_topic(token_id)],
        data=encode(["string"], [value]),
    )


def make_block(height: int, *logs: EvmLog) -> Block:
    return Block(height=height, timestamp=GENESIS + timedelta(seconds=12 * height), logs=tuple(logs))


def _columns(model: type) -> list[str]:
    return [c.name for c in model.__table__.columns]


class FakeEntityStore:
    """
    In-memory EntityStore.

    Rows are kept as plain column dicts and every read builds a fresh entity,
    like a detached ORM load. Calls are recorded per model for assertions.
    """

    def __init__(self) -> None:
        self.rows: dict[type, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.get_calls: list[tuple[type, str]] = []
        self.find_calls: list[tuple[type, list[str]]] = []
        self.save_calls: list[tuple[type, list[str]]] = []
        self.relations_seen: list[tuple[type, tuple[str, ...]]] = []
        self.fail_on_save: type | None = None

    def seed(self, *entities: Any) -> None:
        for entity in entities:
            model = type(entity)
            self.rows[model][entity.id] = {c: getattr(entity, c) for c in _columns(model)}

    def load(self, model: type, entity_id: str) -> Any | None:
        row = self.rows[model].get(entity_id)
        return model(**row) if row is not None else None

    def all(self, model: type) -> list[Any]:
        return [model(**row) for row in self.rows[model].values()]

    def requested_ids(self, model: type) -> list[str]:
        out = [entity_id for m, entity_id in self.get_calls if m is model]
        for m, chunk in self.find_calls:
            if m is model:
                out.extend(chunk)
        return out

    async def get(self, model: type, entity_id: str, relations: Sequence[str] | None = None) -> Any | None:
        self.get_calls.append((model, entity_id))
        self.relations_seen.append((model, tuple(relations or ())))
        return self.load(model, entity_id)

    async def find(self, model: type, entity_ids: Sequence[str], relations: Sequence[str] | None = None) -> list[Any]:
        self.find_calls.append((model, list(entity_ids)))
        self.relations_seen.append((model, tuple(relations or ())))
        return [e for e in (self.load(model, i) for i in entity_ids) if e is not None]

    async def save(self, model: type, entities: Sequence[Any]) -> None:
        if self.fail_on_save is model:
            raise StoreError(f"save of {model.__name__} failed")
        self.save_calls.append((model, [e.id for e in entities]))
        self.seed(*entities)


class FakeTokenContract:
    def __init__(self, fetcher: "FakeTokenContractFetcher", address: str, standard: ContractStandard, block_height: int) -> None:
        self._fetcher = fetcher
        self._address = address
        self._standard = standard
        self._block_height = block_height

    async def read_details(self, *, token_id: int | None = None) -> TokenDetails:
        self._fetcher.details_calls.append((self._address, token_id, self._block_height))
        return self._fetcher.details.get(self._address, TokenDetails())

    async def balance_of(self, account_address: str) -> int | None:
        self._fetcher.balance_calls.append((self._address, account_address, self._block_height))
        return self._fetcher.balances.get((self._address, account_address.lower()))


class FakeTokenContractFetcher:
    def __init__(self) -> None:
        self.details: dict[str, TokenDetails] = {}
        self.balances: dict[tuple[str, str], int] = {}
        self.details_calls: list[tuple[str, int | None, int]] = []
        self.balance_calls: list[tuple[str, str, int]] = []

    def contract(self, *, contract_address: str, contract_standard: ContractStandard, block_height: int) -> FakeTokenContract:
        return FakeTokenContract(self, contract_address.lower(), contract_standard, block_height)
