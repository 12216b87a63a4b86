class DomainError(ValueError):
    """A marketplace rule was violated; carries the HTTP status to report."""

    status_code = 400

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    status_code = 409


class AccessDeniedError(DomainError):
    status_code = 403


class StatusTransitionError(DomainError):
    pass


class InviteRedemptionError(DomainError):
    pass


class GeocodingError(DomainError):
    status_code = 502


class AuthenticationError(DomainError):
    status_code = 401
