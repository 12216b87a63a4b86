from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from localmarket.core.api_docs import error_responses
from localmarket.core.rate_limit import client_ip, geocode_rate_limiter
from localmarket.core.security_current import get_current_user
from localmarket.models.user import User
from localmarket.schemas.geocode import GeocodeResultOut, GeocodeSearchOut
from localmarket.services.geocoding_provider import get_geocoding_provider

router = APIRouter(prefix="/geocode", tags=["geocode"])


@router.get(
    "/search",
    response_model=GeocodeSearchOut,
    summary="Search places",
    description="Address autocomplete used when placing events on the map.",
    responses=error_responses(401, 422, 429, 500, 502),
)
def search_places(
    request: Request,
    q: str = Query(min_length=3),
    limit: int = Query(default=5, ge=1, le=10),
    user: User = Depends(get_current_user),
):
    retry_after = geocode_rate_limiter.check_and_consume(f"{user.id}:{client_ip(request)}")
    if retry_after > 0:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many geocoding requests. Try again later.",
            headers={"Retry-After": str(retry_after)},
        )

    provider = get_geocoding_provider()
    results = provider.search(q.strip(), limit=limit)
    return GeocodeSearchOut(
        query=q.strip(),
        provider=provider.name,
        items=[
            GeocodeResultOut(place_name=item.place_name, lat=item.lat, lng=item.lng, city=item.city)
            for item in results
        ],
    )
