"""Tests for custom exception hierarchy."""

import pytest

from ilotplan.exceptions import (
    IlotPlanError,
    ConfigurationError,
    ValidationError,
    DistributionError,
    GeometryError,
    InvalidBoundsError,
    ReconstructionError,
    RoutingError,
)


def test_ilotplan_error_base():
    """Test base IlotPlanError."""
    error = IlotPlanError("Test error", {"key": "value"})
    assert str(error) == "Test error"
    assert error.message == "Test error"
    assert error.details == {"key": "value"}


def test_details_default_to_empty_dict():
    error = IlotPlanError("No details")
    assert error.details == {}


def test_configuration_error():
    """Test ConfigurationError."""
    error = ConfigurationError("Config missing", {"setting": "corridor_width"})
    assert isinstance(error, IlotPlanError)
    assert error.message == "Config missing"


def test_distribution_error_is_validation_error():
    error = DistributionError("No valid ranges")
    assert isinstance(error, ValidationError)
    assert isinstance(error, IlotPlanError)


def test_geometry_errors():
    """Bounds and reconstruction failures are geometry errors."""
    assert isinstance(InvalidBoundsError("bad bounds"), GeometryError)
    assert isinstance(ReconstructionError("bad entities"), GeometryError)


def test_stage_errors():
    assert isinstance(RoutingError("x"), IlotPlanError)


def test_exception_catching():
    """Test that exceptions can be caught by base class."""
    with pytest.raises(IlotPlanError):
        raise InvalidBoundsError("Test")

    with pytest.raises(ValidationError):
        raise DistributionError("Test")
