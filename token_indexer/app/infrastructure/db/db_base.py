from __future__ import annotations

from typing import Any

from sqlalchemy import Numeric
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class BaseDB(DeclarativeBase):
    pass


class BigIntNumeric(TypeDecorator):
    """
    NUMERIC(78, 0) column exposed as Python int.

    78 digits hold any uint256; plain Numeric would hand back Decimal.
    """

    impl = Numeric(78, 0)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> Any:
        if value is None:
            return None
        return int(value)

    def process_result_value(self, value: Any, dialect: Any) -> int | None:
        if value is None:
            return None
        return int(value)
