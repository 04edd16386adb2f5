"""
Error taxonomy shared by the storage, team and HTTP layers.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base error; ``status_code`` is the HTTP status reported to clients."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    status_code = 400


class NotFoundError(TrackerError):
    status_code = 404


class ConflictError(TrackerError):
    # Clients of the original API expect 400 for blocked deletes.
    status_code = 400


class StorageError(TrackerError):
    status_code = 500
