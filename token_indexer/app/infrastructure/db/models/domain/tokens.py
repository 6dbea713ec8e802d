from __future__ import annotations

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from token_indexer.app.infrastructure.db.db_base import BaseDB, BigIntNumeric
from token_indexer.app.infrastructure.db.models.domain.accounts import AccountsDB
from token_indexer.app.infrastructure.db.models.domain.collections import CollectionsDB


class FTokensDB(BaseDB):
    """
    Fungible token registry (ERC-20).

    One row = one token contract. name/symbol/decimals come from eth_call and
    stay NULL when the contract does not answer.
    """

    __tablename__ = "f_tokens"
    __table_args__ = (
        Index("ix_f_tokens_symbol", "symbol"),
        {"schema": "domain"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    contract_address: Mapped[str] = mapped_column(Text, nullable=False)
    contract_standard: Mapped[str] = mapped_column(String(7), nullable=False)

    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    symbol: Mapped[str | None] = mapped_column(Text, nullable=True)
    decimals: Mapped[int | None] = mapped_column(Integer, nullable=True)


class NfTokensDB(BaseDB):
    """
    Non-fungible / semi-fungible token (ERC-721 / ERC-1155).

    One row = one (contract, native token id). `amount` is the running supply,
    meaningful for ERC-1155; for ERC-721 it stays at 0 or 1.
    """

    __tablename__ = "nf_tokens"
    __table_args__ = (
        Index("ix_nf_tokens_collection", "collection_id"),
        Index("ix_nf_tokens_current_owner", "current_owner_id"),
        Index("ix_nf_tokens_is_burned", "is_burned"),
        {"schema": "domain"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    native_id: Mapped[str] = mapped_column(Text, nullable=False)
    contract_address: Mapped[str] = mapped_column(Text, nullable=False)

    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    symbol: Mapped[str | None] = mapped_column(Text, nullable=True)
    uri: Mapped[str | None] = mapped_column(Text, nullable=True)

    collection_id: Mapped[str] = mapped_column(
        Text, ForeignKey("domain.collections.id"), nullable=False
    )
    current_owner_id: Mapped[str] = mapped_column(
        Text, ForeignKey("domain.accounts.id"), nullable=False
    )

    amount: Mapped[int] = mapped_column(BigIntNumeric, nullable=False)
    is_burned: Mapped[bool] = mapped_column(Boolean, nullable=False)

    collection: Mapped[CollectionsDB] = relationship(viewonly=True)
    current_owner: Mapped[AccountsDB] = relationship(viewonly=True)
