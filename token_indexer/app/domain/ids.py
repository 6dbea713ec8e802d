"""
Deterministic entity ids.

Every id is a pure function of the entity's natural key, so re-deriving it in a
later batch hits the same row (idempotent upsert).

Composite ids join an account id with another id using "-". Account ids are
fixed-width hex addresses and never contain "-", so the first "-" always splits
the pair back into its components.
"""
from __future__ import annotations

from eth_utils import to_normalized_address

_SEPARATOR = "-"


def account_id(address: str) -> str:
    return to_normalized_address(address)


def ft_token_id(contract_address: str) -> str:
    return to_normalized_address(contract_address)


def collection_id(contract_address: str) -> str:
    return to_normalized_address(contract_address)


def short_address(address: str) -> str:
    # first 6 / last 6 chars keep NFT ids bounded in length
    addr = to_normalized_address(address)
    return f"{addr[:6]}{_SEPARATOR}{addr[-6:]}"


def nft_id(contract_address: str, native_id: int | str) -> str:
    return f"{short_address(contract_address)}{_SEPARATOR}{native_id}"


def transfer_id(event_id: str) -> str:
    return event_id


def nft_transfer_id(event_id: str, native_id: int | str) -> str:
    # one ERC1155 TransferBatch event yields many transfers sharing event_id
    return f"{event_id}{_SEPARATOR}{native_id}"


def account_transfer_id(account: str, transfer: str) -> str:
    return f"{account}{_SEPARATOR}{transfer}"


def account_balance_id(account: str, token: str) -> str:
    return f"{account}{_SEPARATOR}{token}"


def event_id(block_height: int, index_in_block: int) -> str:
    return f"{block_height:010d}{_SEPARATOR}{index_in_block:06d}"
