"""Tests for layout configuration and settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from ilotplan.exceptions import ConfigurationError
from ilotplan.layout_config import LayoutConfig, PlacementConfig, ReconstructionConfig, RoutingConfig
from ilotplan.settings import Settings


class TestLayoutConfig:
    def test_defaults(self):
        config = LayoutConfig.default()
        assert config.reconstruction.snap_tolerance == pytest.approx(1e-3)
        assert config.reconstruction.circle_segments == 36
        assert config.placement.min_entrance_distance == 1.0
        assert config.placement.min_ilot_distance == pytest.approx(0.2)
        assert config.placement.max_attempts_per_ilot == 800
        assert config.routing.corridor_width == 1.5
        assert config.routing.grid_resolution == 0.5

    def test_effective_seed_defaults_to_one(self):
        assert PlacementConfig().effective_seed == 1
        assert PlacementConfig(seed=42).effective_seed == 42

    def test_keywords_are_upper_cased(self):
        config = ReconstructionConfig(entrance_keywords=["door ", "exit"], forbidden_keywords="stair")
        assert config.entrance_keywords == ("DOOR", "EXIT")
        assert config.forbidden_keywords == ("STAIR",)

    def test_from_dict_wraps_validation_errors(self):
        with pytest.raises(ConfigurationError):
            LayoutConfig.from_dict({"routing": {"corridor_width": -1}})

    def test_inverted_aspect_band_rejected(self):
        with pytest.raises(ConfigurationError):
            LayoutConfig.from_dict({"placement": {"aspect_ratio_min": 2.5, "aspect_ratio_max": 1.0}})

    def test_main_height_must_fit_corridor(self):
        with pytest.raises(ValueError):
            RoutingConfig(corridor_width=2.0, main_corridor_max_height=1.0)

    def test_with_overrides(self):
        config = LayoutConfig.default().with_overrides(placement={"seed": 7}, routing={"corridor_width": 2.0})
        assert config.placement.seed == 7
        assert config.routing.corridor_width == 2.0
        assert config.placement.min_ilot_distance == pytest.approx(0.2)

    def test_with_overrides_unknown_section(self):
        with pytest.raises(ConfigurationError):
            LayoutConfig.default().with_overrides(rendering={"dpi": 300})


class TestSettings:
    def test_load_default_file(self):
        path = Path(__file__).resolve().parent.parent / "config" / "default.yaml"
        settings = Settings.load(path)
        assert settings.layout == LayoutConfig.default()
        assert settings.logging.level == "INFO"

    def test_load_custom_file(self, tmp_path: Path):
        path = tmp_path / "layout.yaml"
        path.write_text(
            "layout:\n  placement:\n    seed: 99\nlogging:\n  level: debug\n",
            encoding="utf-8",
        )
        settings = Settings.load(path)
        assert settings.layout.placement.seed == 99
        assert settings.logging.level == "DEBUG"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            Settings.load(tmp_path / "missing.yaml")

    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("layout:\n  routing:\n    grid_resolution: 0\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            Settings.load(path)

    def test_env_variable_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        path = tmp_path / "env.yaml"
        path.write_text("layout:\n  routing:\n    corridor_width: 3.0\n", encoding="utf-8")
        monkeypatch.setenv("ILOTPLAN_CONFIG", str(path))
        settings = Settings.load()
        assert settings.layout.routing.corridor_width == 3.0

    def test_get_settings_feeds_a_layout_run(self, tmp_path: Path):
        import ilotplan

        path = tmp_path / "run.yaml"
        path.write_text("layout:\n  placement:\n    seed: 11\n", encoding="utf-8")
        ilotplan.get_settings.cache_clear()
        settings = ilotplan.get_settings(str(path))
        assert settings is ilotplan.get_settings(str(path))
        ilotplan.get_settings.cache_clear()

        result = ilotplan.generate_layout(
            ilotplan.FloorPlan.empty((0, 0, 20, 20)), {"1-3": 100}, config=settings.layout, total_units=2
        )
        assert result.placement.seed == 11
