class StateConflictError(Exception):
    """
    Raised when an operation conflicts with the current state of a record.

    This is distinct from ``django.core.exceptions.ValidationError``: the
    input itself is well formed but the record is not in a state where the
    operation is allowed.
    """

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details


class BatchInProgressError(StateConflictError):
    pass


class AttemptAlreadyFinishedError(StateConflictError):
    pass


class StorageNotConfiguredError(Exception):
    """
    Raised when object-storage credentials have not been configured for a user.
    """

    pass
