"""Tests for worker settings resolution."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from botdeploy.config.env_loader import (
    get_env_var,
    load_env_file,
    substitute_env_vars,
)
from botdeploy.config.loader import load_settings
from botdeploy.lib.errors import ConfigError
from botdeploy.models.config import WorkerSettings


class TestSubstituteEnvVars:
    """Tests for ${VAR} substitution."""

    def test_replaces_set_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Referenced variables are replaced with their values."""
        monkeypatch.setenv("BOT_WORKER_KEY", "s3cret")

        assert substitute_env_vars("api_key: ${BOT_WORKER_KEY}") == "api_key: s3cret"

    def test_unset_variable_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Missing variables are a configuration error."""
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)

        with pytest.raises(ConfigError) as exc_info:
            substitute_env_vars("x: ${NOT_SET_ANYWHERE}")

        assert exc_info.value.field == "NOT_SET_ANYWHERE"

    def test_text_without_references_is_unchanged(self) -> None:
        """Plain text and bare dollar signs pass through."""
        assert substitute_env_vars("cost: $5") == "cost: $5"


class TestEnvHelpers:
    """Tests for dotenv loading and env lookups."""

    def test_load_env_file_does_not_override(
        self, tmp_path: Path, isolated_env: dict[str, str]
    ) -> None:
        """Variables already in the environment win over the file."""
        env_file = tmp_path / ".env"
        env_file.write_text(
            "BOTDEPLOY_TEST_A=from-file\nBOTDEPLOY_TEST_B=from-file\n",
            encoding="utf-8",
        )
        os.environ["BOTDEPLOY_TEST_A"] = "from-env"

        assert load_env_file(env_file) is True
        assert os.environ["BOTDEPLOY_TEST_A"] == "from-env"
        assert os.environ["BOTDEPLOY_TEST_B"] == "from-file"

    def test_load_missing_env_file(self, tmp_path: Path) -> None:
        """A missing dotenv file is not an error."""
        assert load_env_file(tmp_path / "absent.env") is False

    def test_get_env_var_treats_blank_as_unset(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Whitespace-only values fall back to the default."""
        monkeypatch.setenv("BOTDEPLOY_BLANK", "  ")

        assert get_env_var("BOTDEPLOY_BLANK", "fallback") == "fallback"


class TestLoadSettings:
    """Tests for load_settings precedence and validation."""

    def test_defaults(self) -> None:
        """With no file and no environment the defaults apply."""
        settings = load_settings(env_vars={}, env_file=None)

        assert settings == WorkerSettings()
        assert settings.port == 3000
        assert settings.workspace_root == Path("/tmp")
        assert settings.clone_timeout == 30.0
        assert settings.build_timeout == 600.0
        assert settings.keep_workspace_on_success is True

    def test_yaml_file_overrides_defaults(self, tmp_path: Path) -> None:
        """Values from the YAML file replace defaults."""
        config = tmp_path / "worker.yaml"
        config.write_text(
            "port: 8080\nworkspace_root: /srv/bots\nmax_concurrent_builds: 4\n",
            encoding="utf-8",
        )

        settings = load_settings(config, env_vars={}, env_file=None)

        assert settings.port == 8080
        assert settings.workspace_root == Path("/srv/bots")
        assert settings.max_concurrent_builds == 4

    def test_yaml_substitutes_env_vars(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """${VAR} references in the file are resolved."""
        monkeypatch.setenv("WORKER_SECRET_FOR_TEST", "abc")
        config = tmp_path / "worker.yaml"
        config.write_text("api_key: ${WORKER_SECRET_FOR_TEST}\n", encoding="utf-8")

        settings = load_settings(config, env_vars={}, env_file=None)

        assert settings.api_key == "abc"

    def test_env_overrides_yaml(self, tmp_path: Path) -> None:
        """Environment variables take precedence over the file."""
        config = tmp_path / "worker.yaml"
        config.write_text("port: 8080\n", encoding="utf-8")

        settings = load_settings(
            config, env_vars={"BOTDEPLOY_PORT": "9090"}, env_file=None
        )

        assert settings.port == 9090

    def test_legacy_variable_names(self) -> None:
        """Unprefixed worker variables are honored."""
        settings = load_settings(
            env_vars={
                "WORKER_API_KEY": "legacy",
                "PORT": "4000",
                "DOCKER_HOST": "unix:///var/run/docker.sock",
            },
            env_file=None,
        )

        assert settings.api_key == "legacy"
        assert settings.port == 4000
        assert settings.docker_base_url == "unix:///var/run/docker.sock"

    def test_prefixed_variable_wins_over_legacy(self) -> None:
        """BOTDEPLOY_* names are checked first."""
        settings = load_settings(
            env_vars={"BOTDEPLOY_API_KEY": "new", "WORKER_API_KEY": "old"},
            env_file=None,
        )

        assert settings.api_key == "new"

    @pytest.mark.parametrize(
        ("raw", "expected"), [("false", False), ("0", False), ("yes", True)]
    )
    def test_boolean_env_values(self, raw: str, expected: bool) -> None:
        """Boolean settings accept common spellings."""
        settings = load_settings(
            env_vars={"BOTDEPLOY_KEEP_WORKSPACE_ON_SUCCESS": raw}, env_file=None
        )

        assert settings.keep_workspace_on_success is expected

    def test_config_path_from_environment(self, tmp_path: Path) -> None:
        """BOTDEPLOY_CONFIG points at the settings file."""
        config = tmp_path / "worker.yaml"
        config.write_text("image_prefix: mybots\n", encoding="utf-8")

        settings = load_settings(
            env_vars={"BOTDEPLOY_CONFIG": str(config)}, env_file=None
        )

        assert settings.image_prefix == "mybots"

    def test_missing_file(self, tmp_path: Path) -> None:
        """A named file that does not exist is an error."""
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "missing.yaml", env_vars={}, env_file=None)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Malformed YAML is reported as ConfigError."""
        config = tmp_path / "worker.yaml"
        config.write_text("port: [8080\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(config, env_vars={}, env_file=None)

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        """The top level must be a mapping."""
        config = tmp_path / "worker.yaml"
        config.write_text("- port\n- 8080\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="mapping"):
            load_settings(config, env_vars={}, env_file=None)

    def test_invalid_value(self) -> None:
        """Out-of-range values name the offending field."""
        with pytest.raises(ConfigError) as exc_info:
            load_settings(env_vars={"BOTDEPLOY_PORT": "not-a-port"}, env_file=None)

        assert exc_info.value.field == "port"

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        """Typos in the file are not silently ignored."""
        config = tmp_path / "worker.yaml"
        config.write_text("prot: 8080\n", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            load_settings(config, env_vars={}, env_file=None)

        assert exc_info.value.field == "prot"

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        """An empty file behaves like no file."""
        config = tmp_path / "worker.yaml"
        config.write_text("", encoding="utf-8")

        assert load_settings(config, env_vars={}, env_file=None) == WorkerSettings()
