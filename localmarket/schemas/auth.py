from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, ValidationInfo, field_validator, model_validator

MIN_PASSWORD_LENGTH = 8
PLATFORM_ROLES = ("user", "admin")


def _strong_enough(value: str, info: ValidationInfo) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"{info.field_name} must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


def _not_blank(value: str, info: ValidationInfo) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{info.field_name} is required")
    return cleaned


class SignupIn(BaseModel):
    email: EmailStr
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "maya@example.com",
                "password": "market-day-2026",
                "first_name": "Maya",
                "last_name": "Lopez",
            }
        }
    )

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str, info: ValidationInfo) -> str:
        return _strong_enough(value, info)

    @field_validator("first_name", "last_name")
    @classmethod
    def blank_name_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class LoginIn(BaseModel):
    email: str
    password: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "maya@example.com", "password": "market-day-2026"}}
    )

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str, info: ValidationInfo) -> str:
        return _not_blank(value, info)


class TokenOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshIn(BaseModel):
    refresh_token: str

    model_config = ConfigDict(json_schema_extra={"example": {"refresh_token": "<refresh token>"}})

    @field_validator("refresh_token")
    @classmethod
    def check_refresh_token(cls, value: str, info: ValidationInfo) -> str:
        return _not_blank(value, info)


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str

    @field_validator("current_password")
    @classmethod
    def check_current(cls, value: str, info: ValidationInfo) -> str:
        return _not_blank(value, info)

    @field_validator("new_password")
    @classmethod
    def check_new(cls, value: str, info: ValidationInfo) -> str:
        return _strong_enough(value, info)


class PasswordResetRequestIn(BaseModel):
    email: EmailStr

    model_config = ConfigDict(json_schema_extra={"example": {"email": "maya@example.com"}})


class PasswordResetConfirmIn(BaseModel):
    reset_token: str
    new_password: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"reset_token": "pr_Zm9vYmFy", "new_password": "stall-42-open"}}
    )

    @field_validator("reset_token")
    @classmethod
    def check_reset_token(cls, value: str, info: ValidationInfo) -> str:
        return _not_blank(value, info)

    @field_validator("new_password")
    @classmethod
    def check_new(cls, value: str, info: ValidationInfo) -> str:
        return _strong_enough(value, info)


class ProfileOut(BaseModel):
    """Account, profile and vendor ids in one payload for the client shell."""

    id: str
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    is_vendor: bool
    vendor_id: Optional[str] = None
    business_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5b0f6c2e-9a51-4d1e-8c3f-0e7a2b4d6f18",
                "email": "maya@example.com",
                "first_name": "Maya",
                "last_name": "Lopez",
                "role": "user",
                "is_vendor": True,
                "vendor_id": "5b0f6c2e-9a51-4d1e-8c3f-0e7a2b4d6f18",
                "business_id": "3f1c8a5e-0a4b-4c1e-9a59-2f4f7f0b8d21",
                "created_at": "2026-05-02T09:30:00Z",
            }
        }
    )


class UpdateProfileIn(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def names_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("name fields cannot be empty")
        return value.strip() if value is not None else None

    @model_validator(mode="after")
    def require_a_change(self) -> "UpdateProfileIn":
        if self.first_name is None and self.last_name is None:
            raise ValueError("At least one field must be provided")
        return self


class PlatformRoleIn(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def known_role(cls, value: str) -> str:
        role = value.strip().lower()
        if role not in PLATFORM_ROLES:
            raise ValueError("role must be one of: " + ", ".join(PLATFORM_ROLES))
        return role


class PlatformRoleOut(BaseModel):
    user_id: str
    role: str
