"""Security utilities: password hashing and JWT access tokens."""

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from familymenu.config import settings


# --- Password Hashing ---

def _secret(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; bcrypt>=5 rejects longer input
    return password.encode()[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_secret(password), bcrypt.gensalt(rounds=10)).decode()


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(_secret(password), hashed.encode())


# --- JWT Tokens ---

def create_access_token(user_id: str, role: str, token_version: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": user_id,
        "role": role,
        "ver": token_version,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
