from sqlalchemy import Column, Integer, String, Boolean, DateTime
from datetime import datetime, timezone
from .db import Base

MAX_TEXT_LENGTH = 255


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(MAX_TEXT_LENGTH), nullable=False)
    # stored trimmed and lower-cased; uniqueness is enforced here, not in-process
    email = Column(String(MAX_TEXT_LENGTH), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


accounts_table = Account.__table__

# Columns that may leave the service; password_hash is write-only.
PUBLIC_COLUMNS = (
    accounts_table.c.id,
    accounts_table.c.name,
    accounts_table.c.email,
    accounts_table.c.created_at,
    accounts_table.c.last_login,
    accounts_table.c.is_active,
)
