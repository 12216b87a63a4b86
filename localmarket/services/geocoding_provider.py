import hashlib
from dataclasses import dataclass
from typing import Protocol

import requests

from localmarket.core.config import settings
from localmarket.core.errors import GeocodingError


@dataclass(frozen=True)
class GeocodeResult:
    place_name: str
    lat: float
    lng: float
    city: str | None = None


class GeocodingProvider(Protocol):
    name: str

    def search(self, query: str, *, limit: int) -> list[GeocodeResult]:
        ...


class StubGeocodingProvider:
    """Deterministic offline results; the same query always maps to the same point."""

    name = "stub"

    def search(self, query: str, *, limit: int) -> list[GeocodeResult]:
        digest = hashlib.sha256(query.strip().lower().encode("utf-8")).digest()
        base_lat = 37.70 + (digest[0] / 255) * 0.2
        base_lng = -122.35 + (digest[1] / 255) * 0.2
        results: list[GeocodeResult] = []
        for index in range(limit):
            results.append(
                GeocodeResult(
                    place_name=f"{query.strip()} ({index + 1})",
                    lat=round(base_lat + index * 0.001, 6),
                    lng=round(base_lng + index * 0.001, 6),
                    city=None,
                )
            )
        return results


class LocationIQGeocodingProvider:
    name = "locationiq"

    def __init__(self, *, api_key: str | None, base_url: str, timeout_seconds: float):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def search(self, query: str, *, limit: int) -> list[GeocodeResult]:
        if not self.api_key:
            raise GeocodingError("Geocoding provider unavailable")
        try:
            response = requests.get(
                f"{self.base_url}/autocomplete",
                params={"key": self.api_key, "q": query, "limit": limit, "dedupe": 1},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise GeocodingError("Geocoding provider unavailable") from exc

        if not isinstance(payload, list):
            return []

        results: list[GeocodeResult] = []
        for item in payload[:limit]:
            try:
                lat = float(item["lat"])
                lng = float(item["lon"])
            except (KeyError, TypeError, ValueError):
                continue
            address = item.get("address") or {}
            results.append(
                GeocodeResult(
                    place_name=str(item.get("display_name") or query),
                    lat=lat,
                    lng=lng,
                    city=address.get("city") or address.get("town") or address.get("village"),
                )
            )
        return results


def _build_providers() -> dict[str, GeocodingProvider]:
    return {
        "stub": StubGeocodingProvider(),
        "locationiq": LocationIQGeocodingProvider(
            api_key=settings.locationiq_api_key,
            base_url=settings.locationiq_base_url,
            timeout_seconds=settings.geocoding_timeout_seconds,
        ),
    }


def get_geocoding_provider(name: str | None = None) -> GeocodingProvider:
    providers = _build_providers()
    normalized = (name or settings.geocoding_provider or "").strip().lower()
    provider = providers.get(normalized)
    if not provider:
        available = ", ".join(sorted(providers))
        raise ValueError(f"Unknown geocoding provider '{name}'. Available: {available}")
    return provider
