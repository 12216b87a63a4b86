from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from localmarket.models.business_member import MEMBER_ROLES


class MemberRoleUpdateIn(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        role = value.strip().lower()
        if role not in MEMBER_ROLES:
            raise ValueError("role must be one of: admin, member, owner")
        return role

    model_config = ConfigDict(
        json_schema_extra={"example": {"role": "admin"}}
    )


class MemberOut(BaseModel):
    member_id: str
    user_id: str
    email: EmailStr
    first_name: str | None = None
    last_name: str | None = None
    role: str
    created_at: datetime


class MemberListOut(BaseModel):
    items: list[MemberOut]


class InviteCreateIn(BaseModel):
    email: EmailStr | None = None
    expires_in_days: int | None = Field(default=None, ge=1, le=30)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "partner@example.com",
                "expires_in_days": 7,
            }
        }
    )


class InviteOut(BaseModel):
    invite_id: str
    business_id: str
    code: str
    email: str | None = None
    status: str
    expires_at: datetime
    used_by: str | None = None
    used_at: datetime | None = None
    created_at: datetime
    reused: bool = False


class InviteListOut(BaseModel):
    items: list[InviteOut]


class InviteRedeemIn(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: str) -> str:
        cleaned = value.strip().upper()
        if len(cleaned) < 6:
            raise ValueError("code must be at least 6 characters")
        return cleaned

    model_config = ConfigDict(
        json_schema_extra={"example": {"code": "K7Q2M9XA"}}
    )


class InviteRedeemOut(BaseModel):
    business_id: str
    business_name: str
    member_id: str
    role: str
    vendor_id: str

