from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from token_indexer.app.infrastructure.db.db_base import BaseDB


class AccountsDB(BaseDB):
    """
    One row = one chain address that took part in at least one token transfer.

    Counters are incremented once per logical transfer (an ERC1155 batch counts
    once per token id). Per-account history lives in the account_*_transfers
    join tables.
    """

    __tablename__ = "accounts"
    __table_args__ = ({"schema": "domain"},)

    id: Mapped[str] = mapped_column(Text, primary_key=True)

    transfers_total_count: Mapped[int] = mapped_column(Integer, nullable=False)
    transfers_sent_count: Mapped[int] = mapped_column(Integer, nullable=False)
    transfers_received_count: Mapped[int] = mapped_column(Integer, nullable=False)
