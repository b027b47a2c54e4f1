"""Tests for the layered configuration loader."""

import os

import pytest
from pydantic import ValidationError

from takeout_fixer.common import ConfigLoader
from takeout_fixer.config import TakeoutFixerConfig


@pytest.fixture
def isolated_loader(tmp_path, monkeypatch):
    """Loader that sees no user config, no ./config and no stray env vars."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "takeout_fixer.common.config.platformdirs.user_config_dir",
        lambda appname, appauthor: str(tmp_path / "user-config"),
    )
    for key in list(os.environ):
        if key.startswith("TAKEOUT_FIXER_"):
            monkeypatch.delenv(key)
    return ConfigLoader(app_name="takeout-fixer", config_class=TakeoutFixerConfig)


class TestConfigLoader:
    """Test ConfigLoader layering."""

    def test_env_prefix(self, isolated_loader):
        assert isolated_loader.env_prefix == "TAKEOUT_FIXER_"

    def test_builtin_defaults(self, isolated_loader):
        config = isolated_loader.load()

        assert config.fixer.photo_dir == "Google Photos"
        assert config.fixer.output_dir == "takeout-fixed"
        assert config.logging.level == "INFO"

    def test_defaults_file(self, isolated_loader, tmp_path):
        defaults = tmp_path / "defaults.toml"
        defaults.write_text('[fixer]\nphoto_dir = "Google Fotos"\n', encoding="utf-8")

        config = isolated_loader.load(defaults_path=defaults)

        assert config.fixer.photo_dir == "Google Fotos"
        assert config.fixer.photo_path_prefix == "Takeout/Google Fotos/"

    def test_missing_defaults_file(self, isolated_loader, tmp_path):
        with pytest.raises(FileNotFoundError):
            isolated_loader.load(defaults_path=tmp_path / "nope.toml")

    def test_local_config_directory(self, isolated_loader, tmp_path):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "defaults.toml").write_text(
            '[logging]\nlevel = "debug"\n', encoding="utf-8"
        )

        config = isolated_loader.load()

        assert config.logging.level == "DEBUG"

    def test_user_config_overrides_defaults(self, isolated_loader, tmp_path):
        defaults = tmp_path / "defaults.toml"
        defaults.write_text('[fixer]\noutput_dir = "a"\nphoto_dir = "P"\n', encoding="utf-8")
        user_dir = tmp_path / "user-config"
        user_dir.mkdir()
        (user_dir / "config.toml").write_text('[fixer]\noutput_dir = "b"\n', encoding="utf-8")

        config = isolated_loader.load(defaults_path=defaults)

        assert config.fixer.output_dir == "b"
        assert config.fixer.photo_dir == "P"

    def test_env_overrides(self, isolated_loader, monkeypatch):
        monkeypatch.setenv("TAKEOUT_FIXER_FIXER_DRY_RUN", "true")
        monkeypatch.setenv("TAKEOUT_FIXER_FIXER_PROGRESS_LOG_INTERVAL", "25")
        monkeypatch.setenv("TAKEOUT_FIXER_FIXER_PHOTO_DIR", "Google Foto")

        config = isolated_loader.load()

        assert config.fixer.dry_run is True
        assert config.fixer.progress_log_interval == 25
        assert config.fixer.photo_dir == "Google Foto"

    def test_unknown_key_rejected(self, isolated_loader, tmp_path):
        defaults = tmp_path / "defaults.toml"
        defaults.write_text('[fixer]\nworkers = 4\n', encoding="utf-8")

        with pytest.raises(ValidationError):
            isolated_loader.load(defaults_path=defaults)

    def test_config_property_loads_once(self, isolated_loader):
        first = isolated_loader.config
        assert isolated_loader.config is first


class TestConvertEnvValue:

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("YES", True),
        ("false", False),
        ("no", False),
        ("42", 42),
        ("0.5", 0.5),
        ("Google Photos", "Google Photos"),
    ])
    def test_conversion(self, raw, expected):
        loader = ConfigLoader(app_name="takeout-fixer", config_class=TakeoutFixerConfig)
        assert loader._convert_env_value(raw) == expected
