"""ilotplan - workspace layout generation from 2D CAD drawings

Reconstructs classified floor plans from decoded drawing entities, packs
rectangular workspace units (îlots) under clearance rules and routes the
corridors that connect them.
"""

from .exceptions import (
    ConfigurationError,
    DistributionError,
    IlotPlanError,
    InvalidBoundsError,
)
from .layout_config import LayoutConfig, PlacementConfig, ReconstructionConfig, RoutingConfig
from .pipeline import LayoutResult, generate_layout
from .placement.engine import PlacementResult, Unit, place_units
from .reconstruct.floor_plan import FloorPlan, Zone, build_floor_plan
from .routing.corridors import Corridor, CorridorType
from .routing.rows import generate_corridors
from .settings import LoggingSettings, Settings, get_settings
from .validate.layout_validation import LayoutValidationResult, validate_layout

__all__ = [
    "build_floor_plan",
    "place_units",
    "generate_corridors",
    "generate_layout",
    "validate_layout",
    "FloorPlan",
    "Zone",
    "Unit",
    "Corridor",
    "CorridorType",
    "PlacementResult",
    "LayoutResult",
    "LayoutValidationResult",
    "LayoutConfig",
    "ReconstructionConfig",
    "PlacementConfig",
    "RoutingConfig",
    "Settings",
    "LoggingSettings",
    "get_settings",
    "IlotPlanError",
    "ConfigurationError",
    "DistributionError",
    "InvalidBoundsError",
]
