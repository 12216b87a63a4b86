from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.security_current import BusinessAccess, get_business_access
from localmarket.schemas.product import DashboardOut
from localmarket.services.dashboard_service import get_vendor_dashboard

router = APIRouter(prefix="/businesses/{business_id}/dashboard", tags=["dashboard"])


@router.get(
    "",
    response_model=DashboardOut,
    summary="Vendor dashboard",
    description="Product and event counts plus interest per showcased product.",
    responses={
        200: {
            "description": "Dashboard summary",
            "content": {
                "application/json": {
                    "example": {
                        "business_id": "3f1c8a5e-0a4b-4c1e-9a59-2f4f7f0b8d21",
                        "product_count": 4,
                        "event_count": 2,
                        "total_interest": 17,
                        "rows": [
                            {
                                "event_id": "2a9d...",
                                "event_name": "Lake Merritt Night Market",
                                "event_date": "2026-06-12",
                                "product_id": "8c1f...",
                                "product_name": "Cedar & Sage Candle",
                                "interest_count": 12,
                            }
                        ],
                    }
                }
            },
        },
        **error_responses(401, 403, 404, 500),
    },
)
def get_dashboard(
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(get_business_access),
):
    return DashboardOut(**get_vendor_dashboard(db, access.business.id))
