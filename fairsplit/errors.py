class FairSplitError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(FairSplitError):
    status_code = 400


class AuthenticationError(FairSplitError):
    status_code = 401


class PermissionDenied(FairSplitError):
    status_code = 403


class NotFoundError(FairSplitError):
    status_code = 404
