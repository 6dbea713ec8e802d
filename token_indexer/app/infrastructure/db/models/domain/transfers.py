from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from token_indexer.app.infrastructure.db.db_base import BaseDB, BigIntNumeric


class FtTransfersDB(BaseDB):
    """
    ERC-20 transfer. One row = one Transfer log (id = event id).
    """

    __tablename__ = "ft_transfers"
    __table_args__ = (
        Index("ix_ft_transfers_block", "block_number"),
        Index("ix_ft_transfers_from", "from_id"),
        Index("ix_ft_transfers_to", "to_id"),
        Index("ix_ft_transfers_token", "token_id"),
        Index("ix_ft_transfers_type", "transfer_type"),
        {"schema": "domain"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)

    # Block / event context
    block_number: Mapped[int] = mapped_column(BigIntNumeric, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    event_index: Mapped[int] = mapped_column(Integer, nullable=False)
    txn_hash: Mapped[str] = mapped_column(Text, nullable=False)

    from_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.accounts.id"), nullable=False)
    to_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.accounts.id"), nullable=False)

    amount: Mapped[int] = mapped_column(BigIntNumeric, nullable=False)
    transfer_type: Mapped[str] = mapped_column(String(8), nullable=False)

    token_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.f_tokens.id"), nullable=False)


class NftTransfersDB(BaseDB):
    """
    ERC-721 / ERC-1155 transfer.

    One row = one (event, token id) pair: a TransferBatch log fans out into one
    row per id, all sharing the same event.
    """

    __tablename__ = "nft_transfers"
    __table_args__ = (
        Index("ix_nft_transfers_block", "block_number"),
        Index("ix_nft_transfers_from", "from_id"),
        Index("ix_nft_transfers_to", "to_id"),
        Index("ix_nft_transfers_operator", "operator_id"),
        Index("ix_nft_transfers_token", "token_id"),
        Index("ix_nft_transfers_type", "transfer_type"),
        {"schema": "domain"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)

    block_number: Mapped[int] = mapped_column(BigIntNumeric, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    event_index: Mapped[int] = mapped_column(Integer, nullable=False)
    txn_hash: Mapped[str] = mapped_column(Text, nullable=False)

    from_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.accounts.id"), nullable=False)
    to_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.accounts.id"), nullable=False)
    # ERC-1155 only
    operator_id: Mapped[str | None] = mapped_column(
        Text, ForeignKey("domain.accounts.id"), nullable=True
    )

    amount: Mapped[int] = mapped_column(BigIntNumeric, nullable=False)
    transfer_type: Mapped[str] = mapped_column(String(8), nullable=False)
    is_batch: Mapped[bool] = mapped_column(Boolean, nullable=False)

    token_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.nf_tokens.id"), nullable=False)
