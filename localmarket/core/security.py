import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import bcrypt
from jose import JWTError, jwt

from localmarket.core.config import settings

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
RESET_TOKEN_PREFIX = "pr_"

# Claims every session token must carry, with the message raised when one is missing.
_REQUIRED_CLAIMS = (
    ("sub", "Invalid token subject"),
    ("jti", "Invalid token id"),
    ("exp", "Invalid token expiration"),
)


class TokenValidationError(ValueError):
    """Raised when a bearer or refresh token cannot be trusted."""


@dataclass(frozen=True)
class TokenMetadata:
    subject: str
    token_type: str
    jti: str
    expires_at: datetime

    @classmethod
    def from_claims(cls, claims: dict) -> "TokenMetadata":
        return cls(
            subject=str(claims["sub"]),
            token_type=str(claims.get("type") or ""),
            jti=str(claims["jti"]),
            expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
        )


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def _issue(user_id: str, token_type: str, lifetime: timedelta) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "type": token_type,
        "jti": str(uuid4()),
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + lifetime).timestamp()),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=JWT_ALGORITHM)


def create_access_token(user_id: str) -> str:
    lifetime = timedelta(minutes=settings.access_token_expire_minutes)
    return _issue(user_id, ACCESS_TOKEN, lifetime)


def create_refresh_token(user_id: str) -> str:
    lifetime = timedelta(days=settings.refresh_token_expire_days)
    return _issue(user_id, REFRESH_TOKEN, lifetime)


def decode_token(token: str, *, expected_type: str | None = None) -> dict:
    """Verify signature and expiry, then check the claims sessions rely on."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise TokenValidationError("Invalid token") from exc

    for claim, message in _REQUIRED_CLAIMS:
        if not claims.get(claim):
            raise TokenValidationError(message)

    if expected_type is not None and claims.get("type") != expected_type:
        raise TokenValidationError("Invalid token type")
    return claims


def get_token_metadata(token: str, *, expected_type: str | None = None) -> TokenMetadata:
    return TokenMetadata.from_claims(decode_token(token, expected_type=expected_type))


def generate_password_reset_token() -> str:
    return RESET_TOKEN_PREFIX + secrets.token_urlsafe(24)


def hash_opaque_token(raw_token: str) -> str:
    """Digest stored in place of refresh and reset tokens."""
    material = "{}:{}".format(settings.secret_key, (raw_token or "").strip())
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
