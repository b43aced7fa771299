"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    kind = "error"

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    kind = "invalid_input"

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    kind = "not_found"

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class InvalidCodeError(AppError):
    """Raised when an invite code matches no group."""

    kind = "invalid_code"

    def __init__(self, message="That join code isn't valid."):
        """Initialize the error."""
        super().__init__(message, 404)


class NotMemberError(AppError):
    """Raised when a role operation targets a user who is not a member."""

    kind = "not_member"

    def __init__(self, message="User is not a member of this group."):
        """Initialize the error."""
        super().__init__(message, 409)


class CannotRemoveOwnerError(AppError):
    """Raised when trying to remove the owner of a group."""

    kind = "cannot_remove_owner"

    def __init__(self, message="The group owner cannot be removed."):
        """Initialize the error."""
        super().__init__(message, 403)


class StoreUnavailableError(AppError):
    """Raised when the backing document store fails a request."""

    kind = "store_unavailable"

    def __init__(self, message="The data store is unavailable."):
        """Initialize the error."""
        super().__init__(message, 503)


class UnauthorizedError(AppError):
    """Raised when the caller lacks permission for an operation."""

    kind = "unauthorized"

    def __init__(
        self, message="You are not authorized to do that.", status_code=403
    ):
        """Initialize the error."""
        super().__init__(message, status_code)
