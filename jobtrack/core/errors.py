"""
Error taxonomy shared by the API layer and the client.

The server raises these from the services and maps them to HTTP statuses;
the client maps HTTP statuses back into the same classes so callers handle
one set of exceptions regardless of which side failed.
"""

from typing import Dict, Optional


class JobTrackError(Exception):
    """Base class for all JobTrack errors."""

    status_code: int = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict:
        return {"detail": self.message}


class ValidationError(JobTrackError):
    """Required fields missing at create time.

    ``errors`` maps each offending field (wire name) to a message.
    """

    status_code = 400

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message or f"Missing required field(s): {', '.join(self.errors)}")

    @property
    def fields(self):
        return sorted(self.errors)

    def to_dict(self) -> Dict:
        return {"detail": self.message, "errors": self.errors}


class NotFoundError(JobTrackError):
    """Target record missing, or owned by someone else."""

    status_code = 404


class AuthError(JobTrackError):
    """Session missing, invalid or expired."""

    status_code = 401


class ConflictError(JobTrackError):
    """Resource already exists (duplicate registration)."""

    status_code = 409


class TransportError(JobTrackError):
    """Network failure or unexpected server response."""

    status_code = 503
