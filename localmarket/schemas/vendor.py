from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator

VENDOR_CATEGORIES: list[tuple[str, str]] = [
    ("food-drink", "Food & Drink"),
    ("wellness", "Wellness"),
    ("jewelry", "Jewelry"),
    ("clothing", "Clothing"),
    ("art", "Art"),
    ("music", "Music"),
    ("home-decor", "Home Decor"),
    ("other", "Other"),
]
VENDOR_CATEGORY_VALUES = {value for value, _ in VENDOR_CATEGORIES}


def _min_length(value: str, *, field: str, length: int) -> str:
    cleaned = value.strip()
    if len(cleaned) < length:
        raise ValueError(f"{field} must be at least {length} characters")
    return cleaned


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _category(value: str) -> str:
    category = value.strip().lower()
    if category not in VENDOR_CATEGORY_VALUES:
        raise ValueError(f"business_category must be one of: {', '.join(sorted(VENDOR_CATEGORY_VALUES))}")
    return category


class VendorCategoryOut(BaseModel):
    value: str
    label: str


class VendorCategoryListOut(BaseModel):
    items: list[VendorCategoryOut]


class VendorSignupIn(BaseModel):
    business_name: str
    business_category: str
    contact_name: str
    email: EmailStr
    phone: str
    website: Optional[str] = None
    instagram: Optional[str] = None
    description: str
    address: str
    city: str
    zip_code: str
    terms_accepted: bool

    @field_validator("business_name")
    @classmethod
    def validate_business_name(cls, value: str) -> str:
        return _min_length(value, field="business_name", length=2)

    @field_validator("contact_name")
    @classmethod
    def validate_contact_name(cls, value: str) -> str:
        return _min_length(value, field="contact_name", length=2)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return _min_length(value, field="phone", length=10)

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: str) -> str:
        return _min_length(value, field="description", length=10)

    @field_validator("address")
    @classmethod
    def validate_address(cls, value: str) -> str:
        return _min_length(value, field="address", length=5)

    @field_validator("city")
    @classmethod
    def validate_city(cls, value: str) -> str:
        return _min_length(value, field="city", length=2)

    @field_validator("zip_code")
    @classmethod
    def validate_zip_code(cls, value: str) -> str:
        return _min_length(value, field="zip_code", length=5)

    @field_validator("business_category")
    @classmethod
    def validate_business_category(cls, value: str) -> str:
        return _category(value)

    @field_validator("website", "instagram")
    @classmethod
    def normalize_links(cls, value: Optional[str]) -> Optional[str]:
        return _optional_text(value)

    @field_validator("terms_accepted")
    @classmethod
    def validate_terms(cls, value: bool) -> bool:
        if not value:
            raise ValueError("terms must be accepted")
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "business_name": "Golden Hour Candles",
                "business_category": "home-decor",
                "contact_name": "Maya Lopez",
                "email": "maya@goldenhour.example",
                "phone": "5105550142",
                "website": "https://goldenhour.example",
                "instagram": "@goldenhourcandles",
                "description": "Hand-poured soy candles with local botanicals.",
                "address": "410 Broadway",
                "city": "Oakland",
                "zip_code": "94607",
                "terms_accepted": True,
            }
        }
    )


class VendorUpdateIn(BaseModel):
    business_category: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    instagram: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None

    @field_validator("business_category")
    @classmethod
    def validate_business_category(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _category(value)

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _min_length(value, field="description", length=10)

    @field_validator("address")
    @classmethod
    def validate_address(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _min_length(value, field="address", length=5)

    @field_validator("city")
    @classmethod
    def validate_city(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _min_length(value, field="city", length=2)

    @field_validator("zip_code")
    @classmethod
    def validate_zip_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _min_length(value, field="zip_code", length=5)

    @field_validator("website", "instagram")
    @classmethod
    def normalize_links(cls, value: Optional[str]) -> Optional[str]:
        return _optional_text(value)

    @model_validator(mode="after")
    def validate_any_field_present(self) -> "VendorUpdateIn":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class VendorLocationOut(BaseModel):
    address: str
    city: str
    zip_code: str


class VendorOut(BaseModel):
    id: str
    user_id: str
    business_id: Optional[str] = None
    business_name: str
    business_category: str
    description: Optional[str] = None
    website: Optional[str] = None
    instagram: Optional[str] = None
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str
    location: Optional[VendorLocationOut] = None
    created_at: datetime
    updated_at: datetime


class VendorListOut(BaseModel):
    items: list[VendorOut]


class VendorStatusUpdateIn(BaseModel):
    status: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "approved"}}
    )
