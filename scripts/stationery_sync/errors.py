"""
errors.py – Exceptions raised by the stationery sync package.
"""

from typing import Optional


class StationeryError(Exception):
    """Base class for every error the package raises on purpose."""


class DraftValidationError(StationeryError):
    """A draft or payload was rejected before anything was sent."""


class IdentifierError(StationeryError):
    """A transaction, product or component id could not be resolved."""


class ApiError(StationeryError):
    """The backend could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None, path: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.path = path
