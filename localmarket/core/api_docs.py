from localmarket.schemas.common import ErrorOut

# Example payloads rendered in the OpenAPI docs for each documented failure.
_ERROR_EXAMPLES: dict[int, tuple[str, str, str]] = {
    400: ("bad_request", "Invite code is no longer active", "/business-invites/redeem"),
    401: ("unauthorized", "Not authenticated", "/vendors/me"),
    403: ("forbidden", "Insufficient role for this action", "/businesses/{business_id}/invites"),
    404: ("not_found", "Business not found", "/businesses/{business_id}"),
    409: ("conflict", "A vendor profile already exists for this account", "/vendors/signup"),
    422: ("validation_error", "Validation failed", "/events"),
    429: ("rate_limited", "Too many failed attempts. Try again later.", "/auth/login"),
    500: ("internal_error", "Internal server error", "/events"),
    502: ("upstream_error", "Geocoding provider unavailable", "/geocode/search"),
}


def error_responses(*status_codes: int) -> dict[int, dict]:
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        code, message, path = _ERROR_EXAMPLES.get(status_code, ("http_error", "HTTP error", "/"))
        responses[status_code] = {
            "model": ErrorOut,
            "description": message,
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": code,
                            "message": message,
                            "request_id": "8d8f2b00-6c79-4a45-8ff4-b0a5f2bc4bc2",
                            "path": path,
                            "details": None,
                        }
                    }
                }
            },
        }
    return responses
