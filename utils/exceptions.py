"""
Custom exception classes for better error handling.
Provides specific error types instead of generic exceptions.
"""


class ValidationError(Exception):
    """Raised when input validation fails."""

    pass


class StoreError(Exception):
    """Base exception for event store operations."""

    pass


class StoreUnavailable(StoreError):
    """Raised when the store backend cannot be reached."""

    pass


class CorruptDocument(StoreError):
    """Raised when the persisted payload is not a well-formed event list."""

    pass


class VersionConflict(StoreError):
    """Raised when a commit carries a stale version token."""

    pass


class EventNotFoundError(Exception):
    """Raised when an event reference does not resolve."""

    pass


class DeliveryFailure(Exception):
    """Raised when a notification cannot be delivered."""

    pass
