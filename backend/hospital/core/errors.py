from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures raised by the service layer.

    ``code`` is a stable machine-readable identifier, ``message`` the single
    human-readable sentence returned to the client.
    """

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code
        self.message = message or code


class ValidationError(ServiceError):
    pass


class NotFoundError(ServiceError):
    pass


class ConflictError(ServiceError):
    pass


class PersistenceError(ServiceError):
    pass
