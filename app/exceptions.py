"""
Custom exceptions for the meeting dashboard.
"""
from typing import Optional


class MeetingDashboardError(Exception):
    """Base exception for meeting dashboard errors."""
    pass


class UpstreamUnavailableError(MeetingDashboardError):
    """Transport or service failure talking to Fireflies or OpenAI."""
    def __init__(self, message: str, status_code: Optional[int] = None, service: Optional[str] = None):
        self.status_code = status_code
        self.service = service
        super().__init__(message)


class NotFoundError(MeetingDashboardError):
    """No record (or upstream transcript) for the given id."""
    pass


class ValidationFailedError(MeetingDashboardError):
    """Request rejected before any store access."""
    pass


class PersistenceFailedError(MeetingDashboardError):
    """Store write error."""
    pass


class PersistenceConstraintError(PersistenceFailedError):
    """A write violated a storage constraint (e.g. duplicate external id)."""
    pass


class PersistenceUnavailableError(PersistenceFailedError):
    """The store could not be reached or the statement failed."""
    pass


class ConfigurationError(MeetingDashboardError):
    """Configuration or environment variable errors."""
    pass
