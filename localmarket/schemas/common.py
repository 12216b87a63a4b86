from pydantic import BaseModel, ConfigDict


class PaginationMeta(BaseModel):
    total: int
    limit: int
    offset: int
    count: int
    has_next: bool

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"total": 23, "limit": 20, "offset": 0, "count": 20, "has_next": True}
        }
    )

    @classmethod
    def for_page(cls, *, total: int, limit: int, offset: int, count: int) -> "PaginationMeta":
        return cls(
            total=total,
            limit=limit,
            offset=offset,
            count=count,
            has_next=offset + count < total,
        )


class FieldIssueOut(BaseModel):
    field: str
    message: str
    type: str | None = None


class ErrorBodyOut(BaseModel):
    code: str
    message: str
    request_id: str
    path: str
    details: list[FieldIssueOut] | None = None


class ErrorOut(BaseModel):
    """Envelope returned for every non-2xx response."""

    error: ErrorBodyOut

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "not_found",
                    "message": "Event not found",
                    "request_id": "0f4c1d9e-52a7-4c36-9a51-3d1f0e2b7c84",
                    "path": "/events/7b1e3f0a-2c44-4d2b-8e7f-96a0c1d5e3b2",
                    "details": None,
                }
            }
        }
    )
