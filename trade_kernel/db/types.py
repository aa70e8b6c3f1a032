"""
Module: trade_kernel.db.types
Responsibility: column types shared across models.
Architecture position: Kernel > DB.  Imports nothing from models/, domain/
    or services/.
"""

from typing import Annotated

from sqlalchemy import BigInteger, Integer, String

# BIGINT identity on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY.
IdentityKey = BigInteger().with_variant(Integer(), "sqlite")

# Hex SHA-256 / HMAC-SHA256 digest
SealHex = Annotated[str, String(64)]
