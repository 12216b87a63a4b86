from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class CreateBusinessFunctionIn(BaseModel):
    name: str
    description: Optional[str] = None
    user_id: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if len(cleaned) < 2:
            raise ValueError("name must be at least 2 characters")
        return cleaned

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("user_id is required")
        return cleaned

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Golden Hour Candles",
                "description": "Hand-poured soy candles.",
                "user_id": "abc123",
            }
        }
    )


class CreateBusinessFunctionOut(BaseModel):
    id: str
    existing: bool


class CheckBusinessAccessIn(BaseModel):
    user_id: str
    business_id: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_id": "abc123",
                "business_id": "3f1c8a5e-0a4b-4c1e-9a59-2f4f7f0b8d21",
            }
        }
    )
