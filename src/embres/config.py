"""Configuration system for resource access.

This module provides hierarchical configuration management with the following
priority order (highest to lowest):
1. Runtime Parameters (passed directly to functions)
2. Environment Variables (prefixed with EMBRES_)
3. Project Config ([tool.embres] in pyproject.toml)
4. Defaults (hardcoded fallbacks)
"""

import codecs
import os
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

_BOOL_FIELDS = {"detect_bom", "resolve_entities", "no_network", "huge_tree", "verbose"}


class ResourceConfig(BaseModel):
    """Configuration model for reading and parsing package resources."""

    encoding: str = Field(
        default="utf-8",
        description="Text encoding used when no byte-order mark is present",
    )

    errors: Literal["strict", "replace", "ignore"] = Field(
        default="strict",
        description="Codec error handler applied while decoding text",
    )

    detect_bom: bool = Field(
        default=True,
        description="Let a UTF-8/16/32 byte-order mark pick the codec",
    )

    resolve_entities: bool = Field(
        default=False,
        description="Resolve external entities while parsing XML",
    )

    no_network: bool = Field(
        default=True,
        description="Forbid network access while parsing XML",
    )

    huge_tree: bool = Field(
        default=False,
        description="Disable libxml2 security limits for very deep or large trees",
    )

    verbose: bool = Field(
        default=False,
        description="Enable debug logging of resource lookups and cache activity",
    )

    model_config = {
        "extra": "forbid",
    }

    @field_validator("encoding")
    @classmethod
    def _check_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as e:
            raise ValueError(f"Unknown text encoding: {value!r}") from e
        return value


def _load_from_pyproject_toml() -> dict[str, Any]:
    """Load configuration from [tool.embres] section in pyproject.toml.

    Returns:
        Dictionary with config values, or empty dict if not found.
    """
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        try:
            import tomli as tomllib  # noqa: F401
        except ImportError:
            return {}

    from pathlib import Path

    current_dir = Path.cwd()
    for path in [current_dir] + list(current_dir.parents):
        pyproject_path = path / "pyproject.toml"
        if pyproject_path.exists():
            try:
                with open(pyproject_path, "rb") as f:
                    data = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError):
                continue
            if "tool" in data and "embres" in data["tool"]:
                result: dict[str, Any] = dict(data["tool"]["embres"])
                return result

    return {}


def _load_from_env() -> dict[str, Any]:
    """Load configuration from environment variables (prefixed with EMBRES_).

    Returns:
        Dictionary with config values from environment.
    """
    config: dict[str, Any] = {}

    env_mapping = {
        "EMBRES_ENCODING": "encoding",
        "EMBRES_ERRORS": "errors",
        "EMBRES_DETECT_BOM": "detect_bom",
        "EMBRES_RESOLVE_ENTITIES": "resolve_entities",
        "EMBRES_NO_NETWORK": "no_network",
        "EMBRES_HUGE_TREE": "huge_tree",
        "EMBRES_VERBOSE": "verbose",
    }

    for env_var, config_key in env_mapping.items():
        value = os.getenv(env_var)
        if value is not None:
            if config_key in _BOOL_FIELDS:
                config[config_key] = value.lower() in (
                    "true",
                    "1",
                    "yes",
                    "on",
                )
            else:
                config[config_key] = value

    return config


def load_config(
    encoding: Optional[str] = None,
    errors: Optional[str] = None,
    verbose: Optional[bool] = None,
    **kwargs: Any,
) -> ResourceConfig:
    """Load configuration with hierarchical priority.

    Priority order (highest to lowest):
    1. Runtime Parameters (passed to this function)
    2. Environment Variables (EMBRES_*)
    3. Project Config ([tool.embres] in pyproject.toml)
    4. Defaults (hardcoded in ResourceConfig)

    Args:
        encoding: Default text encoding.
        errors: Codec error handler.
        verbose: Enable debug logging.
        **kwargs: Any other ResourceConfig field.

    Returns:
        ResourceConfig instance with merged configuration.
    """
    default_config = ResourceConfig()
    file_config = _load_from_pyproject_toml()
    env_config = _load_from_env()

    runtime_config: dict[str, Any] = {}
    if encoding is not None:
        runtime_config["encoding"] = encoding
    if errors is not None:
        runtime_config["errors"] = errors
    if verbose is not None:
        runtime_config["verbose"] = verbose
    runtime_config.update(kwargs)

    merged_config = default_config.model_dump()
    merged_config.update(file_config)
    merged_config.update(env_config)
    merged_config.update(runtime_config)

    return ResourceConfig(**merged_config)
