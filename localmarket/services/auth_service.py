import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from localmarket.core.config import settings
from localmarket.core.errors import AuthenticationError, DomainError
from localmarket.core.security import (
    REFRESH_TOKEN,
    TokenValidationError,
    create_access_token,
    create_refresh_token,
    generate_password_reset_token,
    get_token_metadata,
    hash_opaque_token,
    verify_password,
)
from localmarket.models.auth_token import PasswordResetToken, RefreshToken
from localmarket.models.user import User
from localmarket.schemas.auth import TokenOut

RESET_TOKEN_REJECTED = "Reset token is invalid or expired"


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.scalars(select(User).where(func.lower(User.email) == email.strip().lower())).first()


def authenticate(db: Session, email: str, password: str) -> User:
    user = find_user_by_email(db, email)
    if user is None or not user.is_active or not verify_password(password, user.hashed_password):
        raise AuthenticationError("Invalid credentials")
    return user


def start_session(db: Session, user_id: str, *, ip: str | None = None) -> tuple[TokenOut, str]:
    """Mint an access/refresh pair and record the refresh jti. Caller commits."""
    refresh_token = create_refresh_token(user_id)
    meta = get_token_metadata(refresh_token, expected_type=REFRESH_TOKEN)
    db.add(
        RefreshToken(
            id=str(uuid.uuid4()),
            user_id=user_id,
            token_jti=meta.jti,
            expires_at=meta.expires_at,
            created_by_ip=ip,
        )
    )
    pair = TokenOut(access_token=create_access_token(user_id), refresh_token=refresh_token)
    return pair, meta.jti


def rotate_session(db: Session, raw_refresh_token: str, *, ip: str | None = None) -> TokenOut:
    try:
        meta = get_token_metadata(raw_refresh_token, expected_type=REFRESH_TOKEN)
    except TokenValidationError as exc:
        raise AuthenticationError(str(exc)) from exc

    now = datetime.now(timezone.utc)
    stored = db.scalars(
        select(RefreshToken).where(
            RefreshToken.token_jti == meta.jti,
            RefreshToken.user_id == meta.subject,
        )
    ).first()
    if stored is None or stored.revoked_at is not None or _utc(stored.expires_at) <= now:
        raise AuthenticationError("Refresh token is invalid or expired")

    stored.revoked_at = now
    pair, next_jti = start_session(db, meta.subject, ip=ip)
    stored.replaced_by_jti = next_jti
    return pair


def end_session(db: Session, raw_refresh_token: str) -> None:
    """Revoke one refresh token. Unreadable tokens are ignored."""
    try:
        meta = get_token_metadata(raw_refresh_token, expected_type=REFRESH_TOKEN)
    except TokenValidationError:
        return
    db.execute(
        update(RefreshToken)
        .where(RefreshToken.token_jti == meta.jti, RefreshToken.revoked_at.is_(None))
        .values(revoked_at=datetime.now(timezone.utc))
    )


def end_all_sessions(db: Session, user_id: str) -> None:
    db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
        .values(revoked_at=datetime.now(timezone.utc))
    )


def create_password_reset(db: Session, user: User, *, ip: str | None = None) -> tuple[str, datetime]:
    """Store the hash of a fresh reset token and return the raw token once."""
    raw_token = generate_password_reset_token()
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.password_reset_expire_minutes)
    db.add(
        PasswordResetToken(
            id=str(uuid.uuid4()),
            user_id=user.id,
            token_hash=hash_opaque_token(raw_token),
            expires_at=expires_at,
            requested_by_ip=ip,
        )
    )
    return raw_token, expires_at


def consume_password_reset(db: Session, raw_token: str) -> User:
    now = datetime.now(timezone.utc)
    reset = db.scalars(
        select(PasswordResetToken).where(PasswordResetToken.token_hash == hash_opaque_token(raw_token))
    ).first()
    if reset is None or reset.used_at is not None or _utc(reset.expires_at) <= now:
        raise DomainError(RESET_TOKEN_REJECTED)

    user = db.get(User, reset.user_id)
    if user is None or not user.is_active:
        raise DomainError(RESET_TOKEN_REJECTED)
    reset.used_at = now
    return user
