"""Centralized environment configuration management for genui-validator.

Provides a unified interface for all environment variables with:
- Single `get_environment()` function for all configuration
- Type-safe enum with metadata (default, type, description)
- Consistent resolution: override > environment > default

Example:
    >>> from src.config import EnvVar, get_environment
    >>>
    >>> # Get values with automatic type conversion
    >>> timeout = get_environment(EnvVar.LLM_TIMEOUT)  # Returns float
    >>> api_key = get_environment(EnvVar.OPENAI_API_KEY)  # Returns str | None
    >>>
    >>> # Override at runtime
    >>> timeout = get_environment(EnvVar.LLM_TIMEOUT, override=10.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, overload

# =============================================================================
# Environment Variable Configuration
# =============================================================================


@dataclass(frozen=True)
class EnvConfig:
    """Metadata for an environment variable.

    Attributes:
        name: Environment variable name (e.g., "LLM_TIMEOUT").
        default: Default value if not set in environment.
        var_type: Python type for value conversion (str, int, float, Path).
        description: Human-readable description.
        category: Grouping category for documentation.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"


class EnvVar(Enum):
    """All environment variables used by genui-validator.

    Each member contains an EnvConfig with name, default, type, and description.
    Use with `get_environment()` for type-safe access.

    Categories:
        - llm: adjudication model credentials and request settings
        - data: data point locations
    """

    # -------------------------------------------------------------------------
    # LLM Adjudication
    # -------------------------------------------------------------------------
    OPENAI_API_KEY = EnvConfig(
        name="OPENAI_API_KEY",
        default=None,
        var_type=str,
        description="OpenAI API key for props-source adjudication",
        category="llm",
    )
    OPENAI_BASE_URL = EnvConfig(
        name="OPENAI_BASE_URL",
        default=None,
        var_type=str,
        description="Optional OpenAI-compatible endpoint",
        category="llm",
    )
    LLM_MODEL = EnvConfig(
        name="LLM_MODEL",
        default="gpt-4-turbo",
        var_type=str,
        description="Chat model used for adjudication",
        category="llm",
    )
    LLM_TEMPERATURE = EnvConfig(
        name="LLM_TEMPERATURE",
        default=0.1,
        var_type=float,
        description="Sampling temperature (low for consistent verdicts)",
        category="llm",
    )
    LLM_MAX_TOKENS = EnvConfig(
        name="LLM_MAX_TOKENS",
        default=1000,
        var_type=int,
        description="Completion token cap per adjudication request",
        category="llm",
    )
    LLM_TIMEOUT = EnvConfig(
        name="LLM_TIMEOUT",
        default=30.0,
        var_type=float,
        description="Per-request timeout in seconds",
        category="llm",
    )

    # -------------------------------------------------------------------------
    # Data Paths
    # -------------------------------------------------------------------------
    GENUI_DATA_DIR = EnvConfig(
        name="GENUI_DATA_DIR",
        default=None,  # Falls back to the working directory
        var_type=Path,
        description="Directory containing data point folders",
        category="data",
    )


# =============================================================================
# Type Conversion Helpers
# =============================================================================


def _convert_value(value: str | None, var_type: type, default: Any) -> Any:
    """Convert string value to target type.

    Args:
        value: Raw string value from environment (or None).
        var_type: Target Python type.
        default: Default value if conversion fails or value is None.

    Returns:
        Converted value or default.
    """
    if value is None:
        return default

    if var_type is str:
        return value

    if var_type in (int, float):
        try:
            return var_type(value)
        except ValueError:
            return default

    if var_type is Path:
        return Path(value)

    # Unknown type, return as-is
    return value


# =============================================================================
# Main Interface
# =============================================================================


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: float) -> float: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: Path) -> Path: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Get environment variable value with type conversion.

    Resolution priority:
        1. Explicit override parameter (highest)
        2. Environment variable value
        3. Default from EnvConfig (lowest)

    Args:
        env_var: Environment variable enum member.
        override: Optional override value (bypasses env lookup).

    Returns:
        Value converted to the appropriate type.

    Example:
        >>> get_environment(EnvVar.LLM_MAX_TOKENS)
        1000
        >>> get_environment(EnvVar.LLM_MAX_TOKENS, override=500)
        500
    """
    config: EnvConfig = env_var.value

    if override is not None:
        return override

    raw_value = os.environ.get(config.name)
    return _convert_value(raw_value, config.var_type, config.default)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    """Get metadata for an environment variable."""
    return env_var.value


# =============================================================================
# Convenience Functions
# =============================================================================


def get_data_dir(override: Path | str | None = None) -> Path:
    """Get the data point root directory.

    Resolution: override > GENUI_DATA_DIR > current working directory.
    """
    if override is not None:
        return Path(override)

    env_path = get_environment(EnvVar.GENUI_DATA_DIR)
    if env_path:
        return env_path

    return Path.cwd()


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """List all environment variables, optionally filtered by category.

    Args:
        category: Filter by category (llm, data). None returns all variables.

    Returns:
        List of EnvVar enum members.
    """
    if category is None:
        return list(EnvVar)

    return [var for var in EnvVar if var.value.category == category]


__all__ = [
    # Core types
    "EnvConfig",
    "EnvVar",
    # Main interface
    "get_environment",
    "get_environment_info",
    # Convenience functions
    "get_data_dir",
    # Introspection
    "list_environment_variables",
]
