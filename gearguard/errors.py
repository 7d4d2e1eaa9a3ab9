class GearGuardError(Exception):
    """Base class for errors reported back to the API caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(GearGuardError):
    status_code = 400


class NotFound(GearGuardError):
    status_code = 404


class Unauthenticated(GearGuardError):
    status_code = 401


class Forbidden(GearGuardError):
    status_code = 403
