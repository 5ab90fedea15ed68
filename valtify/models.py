import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

base = declarative_base()

KNOWN_CATEGORIES = ("password", "note", "document", "card", "identity")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive values and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    SQLite drops the offset on the way in, so naive values read back are UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


class Account(base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False)
    last_login = Column(UTCDateTime(), nullable=True)

    def __repr__(self) -> str:
        return f"Account(id={self.id!r})"


class VaultItem(base):
    __tablename__ = "vault_items"
    __table_args__ = (Index("idx_vault_owner_created", "owner_id", "created_at"),)

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    # Free-form label; KNOWN_CATEGORIES are what the clients offer, others are kept as-is.
    category = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    # PayloadCodec output, never plaintext
    payload = Column(Text, nullable=False)

    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime(), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"VaultItem(id={self.id!r}, owner_id={self.owner_id!r})"
