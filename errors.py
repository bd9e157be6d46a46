"""
Error taxonomy for the admin API.

Services raise these; main.py renders them as `{"message": ...}` with the
class status code.
"""


class AdminError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AdminError):
    """Caller input failed a precondition. Nothing was written."""

    status_code = 400


class NotFound(AdminError):
    status_code = 404


class Conflict(AdminError):
    """A uniqueness precondition was violated at write time."""

    status_code = 409


class StoreFailure(AdminError):
    """The MongoDB operation failed or no database is configured."""

    status_code = 500
