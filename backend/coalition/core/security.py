"""
Password hashing and JWT bearer tokens.

Tokens carry the principal id in ``sub`` and its kind in ``role``; admins and
organizations live in separate tables, so the role decides where ``sub`` is
looked up.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from passlib.context import CryptContext
from .config import settings

# New hashes use pbkdf2_sha256; older bcrypt hashes still verify and are upgraded on login
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

ROLE_ADMIN = "ADMIN"
ROLE_ORGANIZATION = "ORGANIZATION"
ROLES = (ROLE_ADMIN, ROLE_ORGANIZATION)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def password_needs_rehash(hashed_password: str) -> bool:
    """True for hashes made with a deprecated scheme."""
    return pwd_context.needs_update(hashed_password)


def create_access_token(subject: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    issued = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": str(subject), "role": role, "iat": issued, "exp": issued + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Return the claims of a valid, unexpired token with a known role, else None."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if claims.get("role") not in ROLES:
        return None
    return claims
