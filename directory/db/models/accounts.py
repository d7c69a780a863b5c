import uuid
from sqlalchemy import Column, String, DateTime, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class Account(Base):
    """Directory account. Credentials live in the external directory, keyed by username."""

    __tablename__ = 'accounts'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(100), nullable=False)
    firstname = Column(String(255), nullable=True)
    lastname = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        UniqueConstraint('username', name='uq_accounts_username'),
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username={self.username})>"
