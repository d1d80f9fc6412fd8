# utils/errors.py
from typing import Optional


class LauncherError(Exception):
    """Base exception for the launcher."""
    pass


class InvalidOptionError(LauncherError):
    """An option value is missing or out of range."""
    pass


class ArtifactError(LauncherError):
    """A local or HDFS artifact could not be used."""
    pass


class ArtifactNotFoundError(ArtifactError):
    """A required artifact does not exist or is not readable."""
    pass


class ResourceManagerError(LauncherError):
    """The resource manager rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SubmissionError(LauncherError):
    """Submitting the application failed."""
    pass


class PollTimeoutError(SubmissionError):
    """The application did not settle before the polling deadline."""

    def __init__(self, message: str, last_state=None):
        super().__init__(message)
        self.last_state = last_state


class FetchError(LauncherError):
    """An HTTP request for JSON failed."""
    pass


class CommunicationError(FetchError):
    """Network-level failure that persisted through every retry."""
    pass


class ProtocolError(FetchError):
    """The server answered, but not with what was expected."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CoordinatorUnavailableError(LauncherError):
    """The coordination service could not be reached."""
    pass


class NoLiveMembersError(LauncherError):
    """The coordination service lists no live cluster members."""
    pass
