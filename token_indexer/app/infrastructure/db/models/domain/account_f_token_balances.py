from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from token_indexer.app.infrastructure.db.db_base import BaseDB, BigIntNumeric


class AccountFTokenBalancesDB(BaseDB):
    """
    Running ERC-20 balance per (account, token).

    Updated incrementally by every transfer (add on receive, subtract on send).
    The first row for a pair is bootstrapped from balanceOf.
    """

    __tablename__ = "account_f_token_balances"
    __table_args__ = (
        Index("ix_account_f_token_balances_account", "account_id"),
        Index("ix_account_f_token_balances_token", "token_id"),
        {"schema": "domain"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    account_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.accounts.id"), nullable=False)
    token_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.f_tokens.id"), nullable=False)

    amount: Mapped[int] = mapped_column(BigIntNumeric, nullable=False)

    updated_at_block: Mapped[int] = mapped_column(BigIntNumeric, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
