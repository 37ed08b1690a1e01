# Database models for the encrypted account store
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from sqlalchemy.sql import func
from .connection import Base


class AppSecurity(Base):
    """Single-row table holding the master password hash and key salt"""
    __tablename__ = "app_security"

    id = Column(Integer, primary_key=True, default=1)
    password_hash = Column(String, nullable=True)
    key_salt = Column(String, nullable=True)
    is_setup_complete = Column(Boolean, default=False, nullable=False)
    setup_at = Column(DateTime(timezone=True))
    last_unlocked_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Account(Base):
    """Chain account with its signing key encrypted under the master password"""
    __tablename__ = "accounts"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False, index=True)
    # Hex-encoded AES-256-GCM payload
    private_key_encrypted = Column(Text, nullable=False)
    private_key_iv = Column(String, nullable=False)
    private_key_tag = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
