"""
Layout Generation Configuration

Centralized parameter bag with Pydantic validation for the three layout
stages: vector reconstruction, unit placement and corridor routing.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ilotplan.exceptions import ConfigurationError


DEFAULT_ENTRANCE_KEYWORDS = ("ENTRANCE", "EXIT", "DOOR", "OPENING", "PORTE", "ENTREE", "RED")
DEFAULT_FORBIDDEN_KEYWORDS = (
    "FORBIDDEN",
    "STAIR",
    "ELEVATOR",
    "LIFT",
    "SHAFT",
    "COLUMN",
    "OBSTACLE",
    "RESTRICT",
    "INTERDIT",
    "BLUE",
)


class ReconstructionConfig(BaseModel):
    """Parameters for turning drawing entities into classified polygons."""

    snap_tolerance: float = Field(
        default=1e-3,
        gt=0.0,
        le=1.0,
        description="Endpoint matching tolerance; endpoint keys are snapped to this grid",
    )
    arc_segment_angle_deg: float = Field(
        default=10.0,
        ge=0.5,
        le=90.0,
        description="Maximum sweep per chord when approximating arcs and bulges",
    )
    circle_segments: int = Field(
        default=36,
        ge=8,
        le=720,
        description="Number of chords used for a full circle",
    )
    max_chain_length: int = Field(
        default=1000,
        ge=3,
        le=1_000_000,
        description="Iteration cap for a single polygon chain walk",
    )
    min_room_area: float = Field(
        default=1.0,
        ge=0.0,
        description="Minimum shoelace area for a closed polygon to become a room",
    )
    entrance_colors: tuple[int, ...] = Field(default=(1, 3))
    entrance_keywords: tuple[str, ...] = Field(default=DEFAULT_ENTRANCE_KEYWORDS)
    forbidden_colors: tuple[int, ...] = Field(default=(4, 5))
    forbidden_keywords: tuple[str, ...] = Field(default=DEFAULT_FORBIDDEN_KEYWORDS)

    @field_validator("entrance_keywords", "forbidden_keywords", mode="before")
    @classmethod
    def _normalize_keywords(cls, value: Any) -> tuple[str, ...]:  # noqa: D401
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        return tuple(str(item).strip().upper() for item in value if str(item).strip())


class PlacementConfig(BaseModel):
    """Parameters for packing units into the floor plan."""

    total_units: int = Field(default=100, ge=0, le=100_000)
    min_entrance_distance: float = Field(
        default=1.0,
        ge=0.0,
        description="Units may not come closer than this to any entrance",
    )
    min_ilot_distance: float = Field(
        default=0.2,
        ge=0.0,
        description="Minimum clearance between two units",
    )
    max_attempts_per_ilot: int = Field(
        default=800,
        ge=0,
        le=1_000_000,
        description="Randomized attempts after the deterministic scan fails",
    )
    max_scan_positions: int = Field(
        default=250_000,
        ge=1,
        description="Upper bound on scan lattice size; larger plans get a coarser step",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the deterministic sequence (None uses 1)",
    )
    min_dimension: float = Field(default=0.5, gt=0.0)
    aspect_ratio_min: float = Field(default=0.6, gt=0.0)
    aspect_ratio_max: float = Field(default=2.0, gt=0.0)
    area_per_person: float = Field(
        default=6.0,
        gt=0.0,
        description="Floor area per occupant used for the capacity estimate",
    )
    refine: bool = Field(default=True, description="Run the deterministic overlap refinement pass")

    @model_validator(mode="after")
    def validate_aspect_band(self) -> "PlacementConfig":
        """Ensure the aspect ratio band is not inverted."""
        if self.aspect_ratio_min > self.aspect_ratio_max:
            raise ValueError(
                f"aspect_ratio_min ({self.aspect_ratio_min}) must not exceed "
                f"aspect_ratio_max ({self.aspect_ratio_max})"
            )
        return self

    @property
    def effective_seed(self) -> int:
        return 1 if self.seed is None else int(self.seed)


class RoutingConfig(BaseModel):
    """Parameters for row detection and corridor synthesis."""

    corridor_width: float = Field(default=1.5, gt=0.0, le=100.0)
    grid_resolution: float = Field(
        default=0.5,
        gt=0.0,
        le=100.0,
        description="Pathfinder cell size; a fidelity/performance knob independent of corridor width",
    )
    row_tolerance_ratio: float = Field(
        default=0.02,
        ge=0.0,
        le=1.0,
        description="Row grouping tolerance as a fraction of the floor plan height",
    )
    min_row_tolerance: float = Field(default=0.25, ge=0.0)
    main_corridor_max_height: float | None = Field(
        default=None,
        description="Clip main corridors to this height, centred in the gap (None keeps the full gap)",
    )
    snap_radius: int = Field(
        default=5,
        ge=0,
        le=1000,
        description="Rings searched when a start or goal cell is occupied",
    )
    max_grid_cells: int = Field(
        default=4_000_000,
        ge=1,
        description="Upper bound on pathfinder grid size",
    )
    optimize_network: bool = Field(
        default=False,
        description="Drop covered corridors and merge abutting main corridors",
    )

    @model_validator(mode="after")
    def validate_main_height(self) -> "RoutingConfig":
        """A clipped main corridor must still fit the configured width."""
        if self.main_corridor_max_height is not None and self.main_corridor_max_height < self.corridor_width:
            raise ValueError(
                f"main_corridor_max_height ({self.main_corridor_max_height}) must be >= "
                f"corridor_width ({self.corridor_width})"
            )
        return self


class LayoutConfig(BaseModel):
    """Aggregate configuration for a full layout run."""

    reconstruction: ReconstructionConfig = Field(default_factory=ReconstructionConfig)
    placement: PlacementConfig = Field(default_factory=PlacementConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)

    @classmethod
    def default(cls) -> "LayoutConfig":
        """Create default configuration."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LayoutConfig":
        """Create configuration from a dictionary, raising ConfigurationError on bad values."""
        try:
            return cls(**(data or {}))
        except ValidationError as exc:
            raise ConfigurationError("Invalid layout configuration", {"errors": str(exc)}) from exc

    def with_overrides(self, **sections: dict[str, Any]) -> "LayoutConfig":
        """Return a copy with per-section overrides, e.g. ``placement={"seed": 7}``."""
        payload = self.model_dump()
        for name, values in sections.items():
            if name not in payload:
                raise ConfigurationError(f"Unknown configuration section: {name}")
            payload[name].update(values)
        return self.from_dict(payload)


__all__ = [
    "ReconstructionConfig",
    "PlacementConfig",
    "RoutingConfig",
    "LayoutConfig",
    "DEFAULT_ENTRANCE_KEYWORDS",
    "DEFAULT_FORBIDDEN_KEYWORDS",
]
