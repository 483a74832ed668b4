class InvalidOperationError(RuntimeError):
    """An engine invariant was violated. This is a bug, not a user error."""


class MalformedStateError(ValueError):
    """A persisted state blob cannot be restored."""
