from __future__ import annotations

from token_indexer.app.domain.models import ZERO_ADDRESS, TransferType


def get_transfer_type(from_address: str, to_address: str) -> TransferType:
    from_zero = from_address.lower() == ZERO_ADDRESS
    to_zero = to_address.lower() == ZERO_ADDRESS

    if from_zero and not to_zero:
        return TransferType.MINT
    if to_zero and not from_zero:
        return TransferType.BURN
    return TransferType.TRANSFER


def get_token_total_supply(current: int, amount: int, transfer_type: TransferType) -> int:
    """
    Running supply of an NFT after one transfer of `amount` units.

    A plain TRANSFER does not change supply, except for a token first seen
    mid-history (supply still 0): the moved amount is taken as the supply.
    The result never goes below 0.
    """
    if transfer_type == TransferType.MINT:
        supply = current + amount
    elif transfer_type == TransferType.BURN:
        supply = current - amount
    elif current == 0:
        supply = amount
    else:
        supply = current
    return max(supply, 0)


def get_token_burned_status(total_supply: int) -> bool:
    return total_supply <= 0
