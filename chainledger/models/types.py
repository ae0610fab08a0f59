"""
Standard type definitions for database models.

Token amounts are raw on-chain integers (wei-like units) and must never pass
through floats. They are stored as NUMERIC(78, 0), wide enough for uint256,
and always surfaced to Python as int.
"""

from decimal import Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator, TypeEngine


class TokenAmount(TypeDecorator):
    """
    uint256-safe integer column.

    SQLite has no arbitrary precision numeric, so the value is kept as
    text there. Other backends use NUMERIC(78, 0).
    """

    impl = Numeric(78, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(80))
        return dialect.type_descriptor(Numeric(78, 0))

    def process_bind_param(self, value: int | None, dialect: Dialect):
        if value is None:
            return None
        value = int(value)
        if dialect.name == "sqlite":
            return str(value)
        return Decimal(value)

    def process_result_value(self, value, dialect: Dialect) -> int | None:
        if value is None:
            return None
        return int(value)
