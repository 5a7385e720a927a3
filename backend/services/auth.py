"""
Authentication Service for Member Sync

Implements:
- sign_up / sign_in / sign_out for email + password members
- Password hashing with bcrypt
- JWT access tokens backed by a server-side session row, so a
  signed-out token stops authenticating before it expires

Failures raise AuthError carrying the provider message the dashboard
matches on ("Invalid login credentials", "User already registered").
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field, EmailStr
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from config import get_settings
from services.members import MemberStore

logger = logging.getLogger(__name__)

DEV_SECRET_KEY = "member-sync-development-secret-change-me"

INVALID_CREDENTIALS = "Invalid login credentials"
ALREADY_REGISTERED = "User already registered"

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthError(Exception):
    """Typed failure from the identity provider."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ==================== MODELS ====================

class Credentials(BaseModel):
    """Sign-in / sign-up request body"""
    email: EmailStr
    password: str = Field(..., min_length=6)


class Token(BaseModel):
    """JWT Token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user_id: str
    email: str


class TokenData(BaseModel):
    """Data extracted from JWT token"""
    user_id: str
    email: str
    session_id: str
    exp: Optional[datetime] = None


class AuthUser(BaseModel):
    """Authenticated member context"""
    id: str
    email: str
    session_id: Optional[str] = None


# ==================== PASSWORD UTILITIES ====================

def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.error(f"Password verification error: {e}")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# ==================== JWT UTILITIES ====================

def _secret_key() -> str:
    return get_settings().JWT_SECRET_KEY or DEV_SECRET_KEY


def create_access_token(
    user_id: str,
    email: str,
    session_id: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token bound to ``session_id``"""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = {
        "sub": user_id,
        "email": email,
        "jti": session_id,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(to_encode, _secret_key(), algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[TokenData]:
    """Decode and validate a JWT token; None when invalid or expired"""
    try:
        payload = jwt.decode(token, _secret_key(), algorithms=[get_settings().JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        return None

    user_id = payload.get("sub")
    email = payload.get("email")
    session_id = payload.get("jti")
    if not user_id or not email or not session_id:
        return None

    exp = payload.get("exp")
    return TokenData(
        user_id=user_id,
        email=email,
        session_id=session_id,
        exp=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None
    )


# ==================== AUTH SERVICE ====================

class AuthService:
    """
    Identity provider for dashboard members.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        query = text("""
            SELECT id, email, password_hash, is_active
            FROM public.users
            WHERE lower(email) = lower(:email)
        """)
        result = await self.db.execute(query, {"email": email})
        row = result.fetchone()

        if not row:
            return None

        return {
            "id": str(row.id),
            "email": row.email,
            "password_hash": row.password_hash,
            "is_active": row.is_active if row.is_active is not None else True
        }

    async def sign_up(self, email: str, password: str) -> AuthUser:
        """Register a member and create their empty profile skeleton"""
        email = email.strip()
        if await self.get_user_by_email(email):
            logger.warning(f"Sign-up refused, already registered: {email}")
            raise AuthError(ALREADY_REGISTERED, status_code=409)

        user_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        await self.db.execute(text("""
            INSERT INTO public.users (id, email, password_hash, is_active, created_at, updated_at)
            VALUES (:id, :email, :password_hash, true, :now, :now)
        """), {
            "id": user_id,
            "email": email,
            "password_hash": get_password_hash(password),
            "now": now
        })
        await MemberStore(self.db).create_skeleton(user_id, email, commit=False)
        await self.db.commit()

        logger.info(f"Member registered: {email}")
        return AuthUser(id=user_id, email=email)

    async def authenticate_user(self, email: str, password: str) -> AuthUser:
        user = await self.get_user_by_email(email)

        if not user:
            logger.warning(f"Sign-in failed: user not found - {email}")
            raise AuthError(INVALID_CREDENTIALS, status_code=401)

        if not user["is_active"]:
            logger.warning(f"Sign-in failed: user inactive - {email}")
            raise AuthError(INVALID_CREDENTIALS, status_code=401)

        if not verify_password(password, user.get("password_hash") or ""):
            logger.warning(f"Sign-in failed: invalid password - {email}")
            raise AuthError(INVALID_CREDENTIALS, status_code=401)

        return AuthUser(id=user["id"], email=user["email"])

    async def sign_in(self, email: str, password: str) -> Token:
        """Verify credentials, open a session and return its access token"""
        user = await self.authenticate_user(email, password)
        settings = get_settings()

        session_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        expires_in = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60
        await self.db.execute(text("""
            INSERT INTO public.auth_sessions (id, user_id, created_at, expires_at)
            VALUES (:id, :user_id, :now, :expires_at)
        """), {
            "id": session_id,
            "user_id": user.id,
            "now": now,
            "expires_at": now + timedelta(seconds=expires_in)
        })
        await self.db.commit()

        logger.info(f"Sign-in successful: {user.email}")
        return Token(
            access_token=create_access_token(user.id, user.email, session_id),
            expires_in=expires_in,
            user_id=user.id,
            email=user.email
        )

    async def sign_out(self, session_id: str) -> bool:
        """Revoke the session behind the current token"""
        result = await self.db.execute(text("""
            UPDATE public.auth_sessions
            SET revoked_at = :now
            WHERE id = :id AND revoked_at IS NULL
            RETURNING id
        """), {"id": session_id, "now": datetime.now(timezone.utc)})
        await self.db.commit()
        return result.fetchone() is not None

    async def is_session_active(self, session_id: str, user_id: str) -> bool:
        result = await self.db.execute(text("""
            SELECT s.id
            FROM public.auth_sessions s
            JOIN public.users u ON u.id = s.user_id
            WHERE s.id = :id AND s.user_id = :user_id
              AND s.revoked_at IS NULL AND s.expires_at > :now
              AND u.is_active
        """), {"id": session_id, "user_id": user_id, "now": datetime.now(timezone.utc)})
        return result.fetchone() is not None
