from typing import Optional


class PycouchError(Exception):
    pass


class ConfigurationError(PycouchError):
    pass


class InvalidInvocationError(PycouchError):
    pass


class InvalidStateError(PycouchError):
    pass


class InvalidBodyError(PycouchError):
    pass


class DatabaseError(PycouchError):
    status_code: Optional[int] = None

    def __init__(self, reason: str = "", status_code: Optional[int] = None, error: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.error = error
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(DatabaseError):
    status_code = 404


class ConflictError(DatabaseError):
    status_code = 409
