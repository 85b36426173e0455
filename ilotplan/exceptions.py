"""Custom exception hierarchy for ilotplan."""

from __future__ import annotations


class IlotPlanError(Exception):
    """Base exception for all ilotplan-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(IlotPlanError):
    """Raised when layout configuration is invalid or missing."""
    pass


class ValidationError(IlotPlanError):
    """Base class for input validation errors."""
    pass


class DistributionError(ValidationError):
    """Raised when a size distribution has no usable ranges."""
    pass


class GeometryError(IlotPlanError):
    """Raised when geometry operations fail."""
    pass


class InvalidBoundsError(GeometryError):
    """Raised when a floor plan has no derivable bounds."""
    pass


class ReconstructionError(GeometryError):
    """Raised when vector reconstruction cannot produce a floor plan."""
    pass


class RoutingError(IlotPlanError):
    """Raised when corridor generation cannot run at all."""
    pass
