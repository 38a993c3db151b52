from datetime import datetime, timedelta, timezone
from typing import Optional, Any, Tuple
import uuid

from jose import JWTError, jwt
from passlib.context import CryptContext

from pipetrade.config import settings


# argon2 for new hashes, bcrypt hashes from imported users still verify
pwd_context = CryptContext(
    schemes=["argon2", "bcrypt"],
    default="argon2",
    deprecated=["bcrypt"],
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    The algorithm is detected from the hash format.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def verify_and_check_needs_rehash(plain_password: str, hashed_password: str) -> Tuple[bool, bool]:
    """
    Verify password and check if the hash needs to be upgraded.

    Returns:
        Tuple of (is_valid, needs_rehash). needs_rehash is True for
        hashes made with a deprecated scheme (bcrypt).
    """
    try:
        if pwd_context.verify(plain_password, hashed_password):
            return True, pwd_context.needs_update(hashed_password)
        return False, False
    except (ValueError, TypeError):
        return False, False


def get_password_hash(password: str) -> str:
    """Hash a password with the default (argon2) scheme."""
    return pwd_context.hash(password)


def create_access_token(
    subject: str | uuid.UUID,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict[str, Any]] = None
) -> str:
    """
    Sign an access token for a user.

    The subject is the user id; login adds the email and role as extra
    claims so clients can render menus without another round trip.
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        **(additional_claims or {}),
        "sub": str(subject),
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
        "type": "access",
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_access_token(token: str) -> Optional[dict[str, Any]]:
    """
    Decode and validate an access token.

    Returns the payload, or None when the token is invalid, expired
    or not an access token.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None
    return payload
