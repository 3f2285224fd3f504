class DomainError(ValueError):
    """Base class for service-layer failures that map onto an HTTP status."""

    status_code = 400
    code = "bad_request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BusinessRuleError(DomainError):
    pass


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"


class ConflictError(DomainError):
    status_code = 409
    code = "conflict"
