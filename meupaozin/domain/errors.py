"""Domain errors raised by services and mapped to HTTP status codes by the API layer."""


class DomainError(Exception):
    """Base class. `status_code` is the HTTP equivalent."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    status_code = 409
