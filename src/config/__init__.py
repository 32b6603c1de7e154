"""Centralized configuration management for genui-validator.

Provides unified access to all configuration via the `get_environment()` function.

Example:
    >>> from src.config import EnvVar, get_environment
    >>>
    >>> model = get_environment(EnvVar.LLM_MODEL)  # Returns str: "gpt-4-turbo"
    >>> api_key = get_environment(EnvVar.OPENAI_API_KEY)  # Returns str | None
    >>>
    >>> for var in list_environment_variables("llm"):
    ...     info = get_environment_info(var)
    ...     print(f"{info.name}: {info.description}")

Environment Variable Categories:
    llm: OpenAI credentials and adjudication request settings
    data: Data point folder locations
"""

from .lib import (
    # Core types
    EnvConfig,
    EnvVar,
    # Main interface
    get_data_dir,
    get_environment,
    get_environment_info,
    # Introspection
    list_environment_variables,
)

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
