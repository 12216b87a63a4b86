from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class BusinessCreateIn(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if len(cleaned) < 2:
            raise ValueError("name must be at least 2 characters")
        return cleaned

    @field_validator("description")
    @classmethod
    def normalize_description(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Golden Hour Candles",
                "description": "Hand-poured soy candles from Oakland.",
            }
        }
    )


class BusinessUpdateIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        if len(cleaned) < 2:
            raise ValueError("name must be at least 2 characters")
        return cleaned

    @model_validator(mode="after")
    def validate_any_field_present(self) -> "BusinessUpdateIn":
        if self.name is None and self.description is None:
            raise ValueError("At least one field must be provided")
        return self


class BusinessOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_by: str
    created_at: datetime
    viewer_role: Optional[str] = None


class BusinessSearchItemOut(BaseModel):
    id: str
    name: str


class BusinessSearchOut(BaseModel):
    items: list[BusinessSearchItemOut]


class BusinessAccessOut(BaseModel):
    has_access: bool
    role: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={"example": {"has_access": True, "role": "owner"}}
    )
