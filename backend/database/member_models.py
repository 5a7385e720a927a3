"""
Member Sync - Database Models

Tables:
- users: Sign-in identities (email + bcrypt hash)
- auth_sessions: Issued access tokens, revoked on sign-out
- member_profiles: The database copy of each member record
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID as PGUUID

from database.connection import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserDB(Base):
    """Member sign-in identity."""
    __tablename__ = "users"

    id = Column(PGUUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)


class AuthSessionDB(Base):
    """
    One row per issued access token.

    The token's ``jti`` claim is the session id; sign-out stamps
    ``revoked_at`` and the token stops authenticating.
    """
    __tablename__ = "auth_sessions"

    id = Column(PGUUID(as_uuid=False), primary_key=True)
    user_id = Column(PGUUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_auth_sessions_user", "user_id"),
    )


class MemberProfileDB(Base):
    """
    Database copy of a member record.

    Authoritative over the spreadsheet whenever any editable column
    is non-empty. Rows are never deleted.
    """
    __tablename__ = "member_profiles"

    user_id = Column(PGUUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    tel = Column(Text, nullable=False, default="")
    topic = Column(Text, nullable=False, default="")
    keyword = Column(Text, nullable=False, default="")
    title = Column(Text, nullable=False, default="")
    social_link = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
