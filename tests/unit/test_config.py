"""Unit tests for configuration loading and profile management."""

import os
import tempfile
from pathlib import Path
from unittest import mock

import pytest
import yaml

from zap.config import ZapConfig
from zap.config.loader import (
    YAMLConfigLoader,
    deep_merge,
    dict_to_config,
    load_config,
    load_yaml_with_inheritance,
)
from zap.config.profiles import (
    Profile,
    detect_profile,
    get_profile_path,
    is_development,
    is_production,
)

CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_simple_merge(self) -> None:
        """Test merging flat dictionaries."""
        result = deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Test merging nested dictionaries."""
        base = {"outer": {"a": 1, "b": 2}}
        override = {"outer": {"b": 3, "c": 4}}
        assert deep_merge(base, override) == {"outer": {"a": 1, "b": 3, "c": 4}}

    def test_override_replaces_non_dict(self) -> None:
        """Test that non-dict values are replaced."""
        assert deep_merge({"a": {"nested": 1}}, {"a": "replaced"}) == {"a": "replaced"}

    def test_base_not_mutated(self) -> None:
        """Test the base dictionary is left alone."""
        base = {"outer": {"a": 1}}
        deep_merge(base, {"outer": {"a": 2}})
        assert base == {"outer": {"a": 1}}


class TestYAMLLoading:
    """Tests for YAML config loading."""

    def test_load_with_inheritance(self) -> None:
        """Test loading YAML with extends keyword."""
        with tempfile.TemporaryDirectory() as tmpdir:
            base_path = Path(tmpdir) / "base.yaml"
            with open(base_path, "w") as f:
                yaml.dump(
                    {
                        "zap": {
                            "storage": {"backend": "json", "filename": "base.json"},
                            "logging": {"level": "INFO"},
                        }
                    },
                    f,
                )

            child_path = Path(tmpdir) / "child.yaml"
            with open(child_path, "w") as f:
                yaml.dump({"extends": "base.yaml", "zap": {"storage": {"backend": "sqlite"}}}, f)

            result = load_yaml_with_inheritance(child_path)
            assert result["zap"]["storage"]["backend"] == "sqlite"
            assert result["zap"]["storage"]["filename"] == "base.json"
            assert result["zap"]["logging"]["level"] == "INFO"
            assert "extends" not in result

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test an empty YAML file loads as an empty dict."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_with_inheritance(path) == {}

    def test_file_not_found(self) -> None:
        """Test FileNotFoundError for missing config."""
        with pytest.raises(FileNotFoundError):
            load_yaml_with_inheritance(Path("/nonexistent/config.yaml"))


class TestDictToConfig:
    """Tests for converting dict to ZapConfig."""

    def test_empty_dict(self) -> None:
        """Test conversion of empty dict uses defaults."""
        with mock.patch.dict(os.environ, {}, clear=True):
            config = dict_to_config({})
        assert config.storage.backend == "json"
        assert config.organizer.provider == "claude"
        assert config.status.error_seconds == 5.0
        assert config.logging.level == "INFO"

    def test_partial_override(self) -> None:
        """Test partial config override."""
        data = {"zap": {"storage": {"backend": "memory"}}}
        with mock.patch.dict(os.environ, {}, clear=True):
            config = dict_to_config(data)
        assert config.storage.backend == "memory"
        assert config.storage.filename == "notes.json"

    def test_empty_sections(self) -> None:
        """Test sections left empty in YAML use defaults."""
        config = dict_to_config({"zap": {"storage": None, "status": None}})
        assert config.status.notice_seconds == 3.0

    def test_data_dir_env_override(self) -> None:
        """Test ZAP_DATA_DIR replaces the configured directory."""
        data = {"zap": {"storage": {"data_dir": "/from/yaml"}}}
        with mock.patch.dict(os.environ, {"ZAP_DATA_DIR": "/from/env"}):
            config = dict_to_config(data)
        assert config.storage.data_dir == "/from/env"

    def test_unknown_key_rejected(self) -> None:
        """Test a misspelled option is an error."""
        with pytest.raises(TypeError):
            dict_to_config({"zap": {"storage": {"backnd": "json"}}})


class TestYAMLConfigLoader:
    """Tests for YAMLConfigLoader class."""

    def test_load_dev_profile(self) -> None:
        """Test loading dev profile from actual config directory."""
        if not CONFIG_DIR.exists():
            pytest.skip("Config directory not found")

        with mock.patch.dict(os.environ, {}, clear=True):
            config = YAMLConfigLoader(CONFIG_DIR).load_profile("dev")

        assert isinstance(config, ZapConfig)
        assert config.logging.level == "DEBUG"
        assert config.storage.data_dir == "~/.zap/dev"

    def test_load_prod_profile(self) -> None:
        """Test loading prod profile from actual config directory."""
        if not CONFIG_DIR.exists():
            pytest.skip("Config directory not found")

        config = YAMLConfigLoader(CONFIG_DIR).load_profile("prod")

        assert config.storage.backend == "sqlite"
        assert config.logging.level == "WARNING"

    def test_load_test_profile(self) -> None:
        """Test the test profile runs offline."""
        if not CONFIG_DIR.exists():
            pytest.skip("Config directory not found")

        config = YAMLConfigLoader(CONFIG_DIR).load_profile("test")

        assert config.storage.backend == "memory"
        assert config.organizer.provider == "mock"

    def test_get_config_dir(self) -> None:
        """Test get_config_dir returns correct path."""
        custom_dir = Path("/custom/config")
        assert YAMLConfigLoader(custom_dir).get_config_dir() == custom_dir


class TestLoadConfigFunction:
    """Tests for convenience load_config function."""

    def test_load_by_profile(self) -> None:
        """Test loading config by profile name."""
        if not CONFIG_DIR.exists():
            pytest.skip("Config directory not found")

        assert isinstance(load_config(profile="test"), ZapConfig)

    def test_load_by_path(self, tmp_path: Path) -> None:
        """Test an explicit path wins over profiles."""
        path = tmp_path / "custom.yaml"
        path.write_text("zap:\n  storage:\n    backend: memory\n")

        assert load_config(path=path).storage.backend == "memory"


class TestProfileDetection:
    """Tests for profile detection."""

    def test_detect_profile_from_env(self) -> None:
        """Test profile detection from environment variable."""
        with mock.patch.dict(os.environ, {"ZAP_PROFILE": "prod"}):
            assert detect_profile() == Profile.PROD

        with mock.patch.dict(os.environ, {"ZAP_PROFILE": " Test "}):
            assert detect_profile() == Profile.TEST

    def test_detect_profile_default_dev(self) -> None:
        """Test default profile is dev."""
        with mock.patch.dict(os.environ, {}, clear=True):
            assert detect_profile() == Profile.DEV

        with mock.patch.dict(os.environ, {"ZAP_PROFILE": "staging"}):
            assert detect_profile() == Profile.DEV

    def test_is_development(self) -> None:
        """Test is_development helper."""
        with mock.patch("zap.config.profiles.detect_profile", return_value=Profile.DEV):
            assert is_development() is True
            assert is_production() is False

    def test_is_production(self) -> None:
        """Test is_production helper."""
        with mock.patch("zap.config.profiles.detect_profile", return_value=Profile.PROD):
            assert is_production() is True
            assert is_development() is False


class TestGetProfilePath:
    """Tests for get_profile_path function."""

    def test_explicit_profile(self) -> None:
        """Test getting path for explicit profile."""
        assert get_profile_path(Profile.DEV, Path("/config")) == Path("/config/dev.yaml")

    def test_auto_detect_profile(self) -> None:
        """Test auto-detecting profile for path."""
        with mock.patch("zap.config.profiles.detect_profile", return_value=Profile.PROD):
            path = get_profile_path(config_dir=Path("/config"))
            assert path == Path("/config/prod.yaml")
