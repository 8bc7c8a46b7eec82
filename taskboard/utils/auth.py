"""
Authentication utilities with JWT tokens and bcrypt password hashing.

Uses industry-standard security practices:
- bcrypt with salt for password hashing
- HS256 algorithm for JWT signing, with issuer and audience claims
- Configurable token expiration
- In-memory blacklist for logged-out tokens, kept until each token expires
"""

import uuid
from datetime import UTC, datetime, timedelta

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from taskboard.config import settings
from taskboard.utils.ttl_store import TTLStore

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


class TokenVerificationError(Exception):
    """Raised when a bearer token cannot be trusted. ``reason`` is for logs only."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a hashed password."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES],
        hashed_password.encode("utf-8"),
    )


def get_password_hash(password: str) -> str:
    """Hash a plain text password using bcrypt."""
    pwd_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt()
    hashed_password = bcrypt.hashpw(password=pwd_bytes, salt=salt)
    return hashed_password.decode("utf-8")


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Create a signed JWT whose subject is the user id."""
    if not user_id or not isinstance(user_id, str):
        raise ValueError("User ID is required and must be a string")

    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expire_minutes)

    to_encode = {
        "sub": user_id,
        "iat": now,
        "exp": now + expires_delta,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        # Tokens issued within the same second must still differ
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """
    Decode and fully verify a JWT access token.

    Checks signature, expiry, issuer and audience. Raises
    ``TokenVerificationError`` with a log-friendly reason on failure.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except ExpiredSignatureError as e:
        raise TokenVerificationError("Token expired") from e
    except JWTError as e:
        raise TokenVerificationError("Invalid token") from e

    if not isinstance(payload.get("sub"), str) or not payload["sub"]:
        raise TokenVerificationError("Invalid token payload")
    return payload


def extract_user_id_from_token(token: str) -> str:
    """Extract the user id ("sub" claim) from a verified JWT token."""
    return decode_access_token(token)["sub"]


def get_token_expiry(token: str) -> datetime | None:
    """Read the ``exp`` claim without verifying the token."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    exp = claims.get("exp")
    if not isinstance(exp, int | float):
        return None
    return datetime.fromtimestamp(exp, UTC)


class TokenBlacklist:
    """Revoked tokens, each remembered only until its own expiry."""

    def __init__(self):
        self._tokens = TTLStore(default_ttl=settings.jwt_expire_minutes * 60)

    def add(self, token: str) -> None:
        expiry = get_token_expiry(token)
        if expiry is None:
            self._tokens.set(token, True)
            return
        ttl = (expiry - datetime.now(UTC)).total_seconds()
        if ttl > 0:
            self._tokens.set(token, True, ttl=ttl)

    def __contains__(self, token: str) -> bool:
        return token in self._tokens

    def clear(self) -> None:
        self._tokens.clear()


token_blacklist = TokenBlacklist()


def blacklist_token(token: str) -> None:
    token_blacklist.add(token)


def is_token_blacklisted(token: str) -> bool:
    return token in token_blacklist
