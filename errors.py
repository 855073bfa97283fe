"""Studio error taxonomy.

Every error is handled at the operation that raised it and shown to the user
as an advisory; none of them leaves the editor state or history half-updated.
"""


class StudioError(Exception):
    """Base class for user-facing studio errors."""


class CapacityExceededError(StudioError):
    """More photos were offered than the poster has slots for."""

    def __init__(self, accepted: int, dropped: int, limit: int = 4):
        self.accepted = accepted
        self.dropped = dropped
        self.limit = limit
        if accepted:
            msg = (f"Maximum {limit} images allowed: added {accepted}, "
                   f"skipped {dropped}")
        else:
            msg = f"Maximum {limit} images allowed"
        super().__init__(msg)


class DecodeFailureError(StudioError):
    """A single uploaded file could not be decoded as an image."""

    def __init__(self, name: str, reason: str = ""):
        self.name = name
        self.reason = reason
        msg = f"Could not read {name or 'image'}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class EmptyDesignError(StudioError):
    """Submission was attempted without any photo on the poster."""

    def __init__(self, msg: str = "Please upload at least one image"):
        super().__init__(msg)


class PersistenceError(StudioError):
    """Saving the design to storage or the record store failed."""
