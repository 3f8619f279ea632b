class ModerationError(Exception):
    """
    Base class for failures raised by the question moderation workflow.

    Each failure aborts a single operation before anything is written, so
    callers can render ``str(exc)`` to the user and carry on.
    """

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details


class NotFoundError(ModerationError):
    pass


class TypeMismatchError(ModerationError):
    pass


class ForbiddenOperationError(ModerationError):
    pass


class InvariantViolation(ModerationError):
    pass
