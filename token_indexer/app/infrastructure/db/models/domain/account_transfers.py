from __future__ import annotations

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from token_indexer.app.infrastructure.db.db_base import BaseDB


class AccountFtTransfersDB(BaseDB):
    """
    Account x ERC-20 transfer join. Records which side (From/To) the account was on,
    so per-account history does not need an OR over the transfers table.
    """

    __tablename__ = "account_ft_transfers"
    __table_args__ = (
        Index("ix_account_ft_transfers_account", "account_id"),
        Index("ix_account_ft_transfers_transfer", "transfer_id"),
        {"schema": "domain"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    account_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.accounts.id"), nullable=False)
    transfer_id: Mapped[str] = mapped_column(
        Text, ForeignKey("domain.ft_transfers.id"), nullable=False
    )
    direction: Mapped[str] = mapped_column(String(8), nullable=False)


class AccountNftTransfersDB(BaseDB):
    """
    Account x NFT transfer join (From/To/Operator).
    """

    __tablename__ = "account_nft_transfers"
    __table_args__ = (
        Index("ix_account_nft_transfers_account", "account_id"),
        Index("ix_account_nft_transfers_transfer", "transfer_id"),
        {"schema": "domain"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    account_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.accounts.id"), nullable=False)
    transfer_id: Mapped[str] = mapped_column(
        Text, ForeignKey("domain.nft_transfers.id"), nullable=False
    )
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
