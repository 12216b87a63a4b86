import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from localmarket.schemas.common import PaginationMeta


class EventCreateIn(BaseModel):
    name: str
    description: Optional[str] = None
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    location: str
    address: str
    city: str
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    image_url: Optional[str] = None

    @field_validator("name", "location", "address", "city")
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("value is required")
        return cleaned

    @field_validator("description", "image_url")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @model_validator(mode="after")
    def validate_time_window(self) -> "EventCreateIn":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Lake Merritt Night Market",
                "description": "Food, crafts and live music by the lake.",
                "date": "2026-06-12",
                "start_time": "17:00:00",
                "end_time": "22:00:00",
                "location": "Lakeside Park",
                "address": "666 Bellevue Ave",
                "city": "Oakland",
                "lat": 37.8087,
                "lng": -122.2580,
                "image_url": None,
            }
        }
    )


class EventOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    location: str
    address: str
    city: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    image_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: dt.datetime


class EventListOut(BaseModel):
    items: list[EventOut]
    pagination: PaginationMeta


class EventCityListOut(BaseModel):
    items: list[str]


class EventVendorInviteIn(BaseModel):
    business_id: str

    @field_validator("business_id")
    @classmethod
    def validate_business_id(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("business_id is required")
        return cleaned


class EventVendorOut(BaseModel):
    invitation_id: str
    event_id: str
    business_id: str
    business_name: str
    status: str
    created_at: dt.datetime
    updated_at: dt.datetime


class EventVendorListOut(BaseModel):
    items: list[EventVendorOut]


class EventInvitationOut(BaseModel):
    invitation_id: str
    business_id: str
    status: str
    event: EventOut


class EventInvitationListOut(BaseModel):
    items: list[EventInvitationOut]


class EventInvitationStatusIn(BaseModel):
    status: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "accepted"}}
    )
