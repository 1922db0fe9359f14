"""
Unit tests for config_service module.

Tests defaults, persistence and validation of editor settings.
"""

import json

from figmark.services.config_service import DEFAULT_CONFIG, ConfigService


class TestLoading:
    """Tests for loading configuration files."""

    def test_missing_file_writes_defaults(self, tmp_path):
        """Should create the config file populated with defaults."""
        path = tmp_path / "figmark" / "config.json"

        config = ConfigService(path)

        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8")) == DEFAULT_CONFIG
        assert config.hit_padding == 10
        assert config.hover_topmost_first is False

    def test_loads_existing_values(self, tmp_path):
        """Should merge stored values over defaults."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"hit_padding": 4, "theme": "light"}), encoding="utf-8")

        config = ConfigService(path)

        assert config.hit_padding == 4
        assert config.theme == "light"
        assert config.fit_width_ratio == 0.8

    def test_persists_new_default_keys(self, tmp_path):
        """Should write missing default keys back to disk."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"theme": "light"}), encoding="utf-8")

        ConfigService(path)

        stored = json.loads(path.read_text(encoding="utf-8"))
        assert stored["theme"] == "light"
        assert stored["default_line_width"] == 4

    def test_corrupted_file_recreated(self, tmp_path):
        """Should fall back to defaults when the file is not JSON."""
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        config = ConfigService(path)

        assert config.theme == "dark"
        assert json.loads(path.read_text(encoding="utf-8")) == DEFAULT_CONFIG

    def test_non_object_file_recreated(self, tmp_path):
        """Should fall back to defaults when the JSON is not an object."""
        path = tmp_path / "config.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        config = ConfigService(path)

        assert config.get("theme") == "dark"


class TestValidation:
    """Tests for validated editor settings."""

    def test_invalid_numbers_use_defaults(self, tmp_path):
        """Should ignore out-of-range or non-numeric values."""
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"fit_width_ratio": 3, "hit_padding": "wide", "fit_height_ratio": True}),
            encoding="utf-8",
        )

        config = ConfigService(path)

        assert config.fit_width_ratio == 0.8
        assert config.hit_padding == 10
        assert config.fit_height_ratio == 0.6

    def test_color_outside_palette(self, tmp_path):
        """Should fall back to red for unknown colors."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"default_color": "#000000"}), encoding="utf-8")

        assert ConfigService(path).default_color == "#ef4444"

    def test_color_case_insensitive(self, tmp_path):
        """Should accept and lowercase palette colors."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"default_color": "#22C55E"}), encoding="utf-8")

        assert ConfigService(path).default_color == "#22c55e"

    def test_unsupported_line_width(self, tmp_path):
        """Should fall back to medium for unknown widths."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"default_line_width": 5}), encoding="utf-8")

        assert ConfigService(path).default_line_width == 4


class TestSetAndSave:
    """Tests for set and save."""

    def test_set_is_in_memory_until_saved(self, tmp_path):
        """Should only write changes on save()."""
        path = tmp_path / "config.json"
        config = ConfigService(path)

        config.set("hover_topmost_first", True)
        assert json.loads(path.read_text(encoding="utf-8"))["hover_topmost_first"] is False

        config.save()
        assert json.loads(path.read_text(encoding="utf-8"))["hover_topmost_first"] is True
        assert ConfigService(path).hover_topmost_first is True
