from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductCreateIn(BaseModel):
    name: str
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name is required")
        return cleaned

    @field_validator("description", "image_url")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Cedar & Sage Candle",
                "description": "8oz soy candle.",
                "price": 24.0,
                "image_url": None,
            }
        }
    )


class ProductOut(BaseModel):
    id: str
    business_id: str
    name: str
    description: Optional[str] = None
    price: Optional[Decimal] = None
    image_url: Optional[str] = None
    created_at: datetime


class ProductListOut(BaseModel):
    items: list[ProductOut]


class ShowcaseIn(BaseModel):
    product_ids: list[str]

    @field_validator("product_ids")
    @classmethod
    def dedupe_product_ids(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for product_id in value:
            cleaned = product_id.strip()
            if cleaned and cleaned not in seen:
                seen.append(cleaned)
        return seen

    model_config = ConfigDict(
        json_schema_extra={"example": {"product_ids": ["8c1f...", "b7e2..."]}}
    )


class ShowcaseOut(BaseModel):
    event_id: str
    business_id: str
    product_ids: list[str]


class EventProductOut(BaseModel):
    product_id: str
    business_id: str
    business_name: str
    name: str
    description: Optional[str] = None
    price: Optional[Decimal] = None
    image_url: Optional[str] = None
    interest_count: int
    interested: bool


class EventProductListOut(BaseModel):
    items: list[EventProductOut]


class InterestOut(BaseModel):
    product_id: str
    event_id: str
    interested: bool
    interest_count: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "8c1f...",
                "event_id": "2a9d...",
                "interested": True,
                "interest_count": 12,
            }
        }
    )


class DashboardRowOut(BaseModel):
    event_id: str
    event_name: str
    event_date: date
    product_id: str
    product_name: str
    interest_count: int


class DashboardOut(BaseModel):
    business_id: str
    product_count: int
    event_count: int
    total_interest: int
    rows: list[DashboardRowOut]
