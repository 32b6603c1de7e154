"""Tests for configuration management."""

from pathlib import Path

import pytest

from .lib import (
    EnvConfig,
    EnvVar,
    get_data_dir,
    get_environment,
    get_environment_info,
    list_environment_variables,
)

# =============================================================================
# Tests for get_environment (main interface)
# =============================================================================


class TestGetEnvironment:
    """Tests for the unified get_environment interface."""

    @pytest.mark.unit
    def test_returns_default_when_not_set(self, monkeypatch):
        """Returns default value when env var is not set."""
        monkeypatch.delenv("LLM_MAX_TOKENS", raising=False)
        assert get_environment(EnvVar.LLM_MAX_TOKENS) == 1000

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Override parameter takes highest priority."""
        monkeypatch.setenv("LLM_MAX_TOKENS", "9999")
        assert get_environment(EnvVar.LLM_MAX_TOKENS, override=500) == 500

    @pytest.mark.unit
    def test_env_var_overrides_default(self, monkeypatch):
        """Environment variable overrides default value."""
        monkeypatch.setenv("LLM_MODEL", "gpt-4o")
        assert get_environment(EnvVar.LLM_MODEL) == "gpt-4o"

    @pytest.mark.unit
    def test_int_type_conversion(self, monkeypatch):
        """Integer type conversion from string."""
        monkeypatch.setenv("LLM_MAX_TOKENS", "2048")
        result = get_environment(EnvVar.LLM_MAX_TOKENS)
        assert result == 2048
        assert isinstance(result, int)

    @pytest.mark.unit
    def test_float_type_conversion(self, monkeypatch):
        """Float type conversion from string."""
        monkeypatch.setenv("LLM_TIMEOUT", "12.5")
        result = get_environment(EnvVar.LLM_TIMEOUT)
        assert result == 12.5
        assert isinstance(result, float)

    @pytest.mark.unit
    def test_invalid_number_returns_default(self, monkeypatch):
        """Invalid numeric value returns default."""
        monkeypatch.setenv("LLM_TEMPERATURE", "warm")
        assert get_environment(EnvVar.LLM_TEMPERATURE) == 0.1

    @pytest.mark.unit
    def test_path_type_conversion(self, monkeypatch, tmp_path):
        """Path variables are converted to Path objects."""
        monkeypatch.setenv("GENUI_DATA_DIR", str(tmp_path))
        assert get_environment(EnvVar.GENUI_DATA_DIR) == tmp_path

    @pytest.mark.unit
    def test_none_default_for_api_keys(self, monkeypatch):
        """API keys default to None when not set."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert get_environment(EnvVar.OPENAI_API_KEY) is None


class TestGetEnvironmentInfo:
    """Tests for environment variable metadata."""

    @pytest.mark.unit
    def test_returns_env_config(self):
        """Returns EnvConfig dataclass."""
        info = get_environment_info(EnvVar.LLM_TIMEOUT)
        assert isinstance(info, EnvConfig)
        assert info.name == "LLM_TIMEOUT"
        assert info.default == 30.0
        assert info.var_type is float
        assert info.category == "llm"

    @pytest.mark.unit
    def test_description_present(self):
        """Description field is populated."""
        info = get_environment_info(EnvVar.OPENAI_API_KEY)
        assert "OpenAI" in info.description


class TestListEnvironmentVariables:
    """Tests for listing environment variables."""

    @pytest.mark.unit
    def test_returns_all_variables(self):
        """Returns all EnvVar members when no category."""
        result = list_environment_variables()
        assert len(result) == len(EnvVar)

    @pytest.mark.unit
    def test_filter_by_category(self):
        """Filters by category correctly."""
        data_vars = list_environment_variables("data")
        assert data_vars == [EnvVar.GENUI_DATA_DIR]
        assert EnvVar.OPENAI_API_KEY in list_environment_variables("llm")


class TestGetDataDir:
    """Tests for data directory resolution."""

    @pytest.mark.unit
    def test_override_takes_priority(self, tmp_path, monkeypatch):
        """Override parameter beats the environment."""
        monkeypatch.setenv("GENUI_DATA_DIR", str(tmp_path / "env"))
        assert get_data_dir(str(tmp_path / "custom")) == tmp_path / "custom"

    @pytest.mark.unit
    def test_env_var_used(self, tmp_path, monkeypatch):
        """GENUI_DATA_DIR used when no override."""
        monkeypatch.setenv("GENUI_DATA_DIR", str(tmp_path))
        assert get_data_dir() == tmp_path

    @pytest.mark.unit
    def test_defaults_to_cwd(self, tmp_path, monkeypatch):
        """Falls back to the working directory."""
        monkeypatch.delenv("GENUI_DATA_DIR", raising=False)
        monkeypatch.chdir(tmp_path)
        assert get_data_dir() == Path.cwd()
