from typing import Optional

from pydantic import BaseModel


class GeocodeResultOut(BaseModel):
    place_name: str
    lat: float
    lng: float
    city: Optional[str] = None


class GeocodeSearchOut(BaseModel):
    query: str
    provider: str
    items: list[GeocodeResultOut]
