import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.config import settings
from localmarket.core.deps import get_db
from localmarket.core.errors import AuthenticationError
from localmarket.core.observability import log_event
from localmarket.core.rate_limit import client_ip, login_rate_limiter
from localmarket.core.security import hash_password, verify_password
from localmarket.core.security_current import get_current_profile, get_current_user
from localmarket.models.profile import Profile
from localmarket.models.user import User
from localmarket.models.vendor import Vendor
from localmarket.schemas.auth import (
    ChangePasswordIn,
    LoginIn,
    PasswordResetConfirmIn,
    PasswordResetRequestIn,
    ProfileOut,
    RefreshIn,
    SignupIn,
    TokenOut,
    UpdateProfileIn,
)
from localmarket.services.auth_service import (
    authenticate,
    consume_password_reset,
    create_password_reset,
    end_all_sessions,
    end_session,
    find_user_by_email,
    rotate_session,
    start_session,
)
from localmarket.services.email_service import send_password_reset_email

router = APIRouter(prefix="/auth", tags=["auth"])

TOKEN_PAIR_DOC = {
    200: {
        "description": "A new access token and refresh token",
        "content": {
            "application/json": {
                "example": {
                    "access_token": "eyJhbGciOiJIUzI1NiJ9.access",
                    "refresh_token": "eyJhbGciOiJIUzI1NiJ9.refresh",
                    "token_type": "bearer",
                }
            }
        },
    }
}
OK = {"ok": True}


def _build_profile(db: Session, user: User, profile: Profile) -> ProfileOut:
    vendor = db.get(Vendor, user.id)
    return ProfileOut(
        id=user.id,
        email=user.email,
        first_name=profile.first_name,
        last_name=profile.last_name,
        role=profile.role,
        is_vendor=profile.is_vendor,
        vendor_id=vendor.id if vendor else None,
        business_id=vendor.business_id if vendor else None,
        created_at=profile.created_at,
    )


def _password_login(db: Session, request: Request, email: str, password: str) -> TokenOut:
    ip = client_ip(request)
    limiter_key = f"{email.strip().lower()}:{ip}"
    locked_for = login_rate_limiter.check(limiter_key)
    if locked_for > 0:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many failed attempts. Try again later.",
            headers={"Retry-After": str(locked_for)},
        )

    try:
        user = authenticate(db, email, password)
    except AuthenticationError:
        login_rate_limiter.register_failure(limiter_key)
        raise
    login_rate_limiter.register_success(limiter_key)

    pair, _ = start_session(db, user.id, ip=ip)
    db.commit()
    return pair


@router.post(
    "/signup",
    response_model=TokenOut,
    summary="Create an account",
    description="Registers a shopper account and profile and signs it in.",
    responses={**TOKEN_PAIR_DOC, **error_responses(400, 422, 500)},
)
def signup(payload: SignupIn, request: Request, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if find_user_by_email(db, email) is not None:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(email=email, hashed_password=hash_password(payload.password))
    db.add(user)
    db.flush()
    db.add(
        Profile(
            id=user.id,
            first_name=payload.first_name,
            last_name=payload.last_name,
            role="admin" if email in settings.bootstrap_admin_emails else "user",
            is_vendor=False,
        )
    )
    pair, _ = start_session(db, user.id, ip=client_ip(request))
    db.commit()
    return pair


@router.post(
    "/login",
    response_model=TokenOut,
    summary="Sign in with email and password",
    responses={**TOKEN_PAIR_DOC, **error_responses(401, 422, 429, 500)},
)
def login(payload: LoginIn, request: Request, db: Session = Depends(get_db)):
    return _password_login(db, request, payload.email, payload.password)


@router.post(
    "/token",
    response_model=TokenOut,
    summary="OAuth2 password flow for the docs Authorize button",
    description="Same as /auth/login but form encoded. The email goes in `username`.",
    responses={**TOKEN_PAIR_DOC, **error_responses(401, 422, 429, 500)},
)
def login_form(
    request: Request,
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    return _password_login(db, request, form.username, form.password)


@router.get("/me", response_model=ProfileOut, summary="Current profile", responses=error_responses(401, 500))
def read_me(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    profile: Profile = Depends(get_current_profile),
):
    return _build_profile(db, user, profile)


@router.patch(
    "/me",
    response_model=ProfileOut,
    summary="Edit name on the current profile",
    responses=error_responses(401, 422, 500),
)
def update_me(
    payload: UpdateProfileIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    profile: Profile = Depends(get_current_profile),
):
    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(profile, field, value)
    db.commit()
    db.refresh(profile)
    return _build_profile(db, user, profile)


@router.post(
    "/refresh",
    response_model=TokenOut,
    summary="Trade a refresh token for a new pair",
    description="The presented refresh token is revoked; each one works once.",
    responses={**TOKEN_PAIR_DOC, **error_responses(401, 422, 500)},
)
def refresh(payload: RefreshIn, request: Request, db: Session = Depends(get_db)):
    pair = rotate_session(db, payload.refresh_token, ip=client_ip(request))
    db.commit()
    return pair


@router.post("/logout", summary="Revoke a refresh token", responses=error_responses(422, 500))
def logout(payload: RefreshIn, db: Session = Depends(get_db)):
    end_session(db, payload.refresh_token)
    db.commit()
    return OK


@router.post(
    "/change-password",
    summary="Change password",
    description="Signs out every other session by revoking all refresh tokens.",
    responses=error_responses(400, 401, 422, 500),
)
def change_password(
    payload: ChangePasswordIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not verify_password(payload.current_password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Current password is incorrect")
    if payload.new_password == payload.current_password:
        raise HTTPException(status_code=400, detail="New password must be different")

    user.hashed_password = hash_password(payload.new_password)
    end_all_sessions(db, user.id)
    db.commit()
    return OK


@router.post(
    "/password-reset/request",
    summary="Email a password reset token",
    description="Answers ok whether or not the email belongs to an account.",
    responses=error_responses(422, 500),
)
def request_password_reset(payload: PasswordResetRequestIn, request: Request, db: Session = Depends(get_db)):
    user = find_user_by_email(db, payload.email)
    if user is None or not user.is_active:
        return OK

    raw_token, expires_at = create_password_reset(db, user, ip=client_ip(request))
    db.commit()

    delivery = send_password_reset_email(
        recipient_email=user.email,
        reset_token=raw_token,
        expires_at=expires_at,
    )
    log_event(
        "auth.password_reset.requested",
        level=logging.WARNING if delivery.status == "failed" else logging.INFO,
        user_id=user.id,
        delivery_status=delivery.status,
        delivery_detail=delivery.detail,
    )
    return OK


@router.post(
    "/password-reset/confirm",
    summary="Set a new password with a reset token",
    description="Reset tokens work once; all refresh tokens are revoked on success.",
    responses=error_responses(400, 422, 500),
)
def confirm_password_reset(payload: PasswordResetConfirmIn, db: Session = Depends(get_db)):
    user = consume_password_reset(db, payload.reset_token)
    user.hashed_password = hash_password(payload.new_password)
    end_all_sessions(db, user.id)
    db.commit()
    return OK
