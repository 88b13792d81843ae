from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from voicenotes.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = [
    "Base",
    "BigInteger",
    "Column",
    "DateTime",
    "ForeignKey",
    "Integer",
    "String",
    "Text",
    "UniqueConstraint",
    "relationship",
    "datetime",
    "timezone",
    "utcnow",
]
