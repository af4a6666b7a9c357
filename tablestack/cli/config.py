#!/usr/bin/env python3
"""
Configuration Management Layer for CLI Module

Provides centralized configuration with support for:
- Environment variables (TABLESTACK_* prefix)
- Config files (~/.tablestack_config.json or project-specific)
- Command-line overrides
- Validated defaults

Configuration priority (highest to lowest):
1. Command-line overrides
2. Explicit config file (--config)
3. Project config file (./.tablestack_config.json)
4. User config file (~/.tablestack_config.json)
5. Environment variables
6. Hardcoded defaults
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from tablestack.core.stack_utils import (
    DEFAULT_POLARS_THREADS,
    DEFAULT_TABLE_TYPES_YAML,
    DEFAULT_WORKERS,
    PARALLEL_THRESHOLD_BYTES,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".tablestack_config.json"
ENV_PREFIX = "TABLESTACK_"


def _resolve(v):
    if v is None:
        return v
    path = Path(v).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path.resolve()


class CLIConfig(BaseModel):
    """
    Central configuration for the tablestack CLI.

    Paths, defaults included, are resolved to absolute paths during
    validation.
    """

    # Reference data
    table_types_yaml: Path = Field(
        default=DEFAULT_TABLE_TYPES_YAML,
        description="YAML table-type dictionary"
    )
    log_dir: Path = Field(
        default=Path("logs"),
        description="Directory for rotating log files"
    )

    # Behavior settings
    verbose: bool = Field(
        default=False,
        description="Echo engine progress to the terminal"
    )

    # Processing settings
    workers: int = Field(
        default=DEFAULT_WORKERS,
        ge=1,
        description="Requested worker processes"
    )
    force_parallel: bool = Field(
        default=False,
        description="Use the requested workers even below the size threshold"
    )
    parallel_threshold_bytes: int = Field(
        default=PARALLEL_THRESHOLD_BYTES,
        ge=0,
        description="Input volume (bytes) at which all cores are used"
    )
    polars_threads: int = Field(
        default=DEFAULT_POLARS_THREADS,
        ge=1,
        le=64,
        description="Polars threads per worker process"
    )
    join_positions: bool = Field(
        default=False,
        description="Attach sensor placement columns to instrument tables"
    )

    # Config metadata (not user-configurable)
    config_version: str = Field(
        default="1.0.0",
        description="Configuration schema version"
    )

    model_config = {
        "validate_assignment": True,
        "validate_default": True,
    }

    @field_validator("table_types_yaml", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v) -> Path:
        """
        Resolve paths to absolute paths.
        Relative paths are resolved relative to current working directory.
        """
        return _resolve(v)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "CLIConfig":
        """
        Load configuration from environment variables.

        Environment variable format: {prefix}{FIELD_NAME}
        Example: TABLESTACK_WORKERS=4, TABLESTACK_FORCE_PARALLEL=true

        Args:
            prefix: Prefix for environment variables (default: "TABLESTACK_")

        Returns:
            CLIConfig instance with values from environment
        """
        config_dict = {}

        for field_name, field_info in cls.model_fields.items():
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            field_type = field_info.annotation
            if field_type is bool:
                config_dict[field_name] = env_value.lower() in ("true", "1", "yes", "on")
            elif field_type is int:
                config_dict[field_name] = int(env_value)
            elif field_type is Path:
                config_dict[field_name] = Path(env_value)
            else:
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_file(cls, config_file: Path) -> "CLIConfig":
        """
        Load configuration from JSON config file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            json.JSONDecodeError: If config file is invalid JSON
        """
        config_file = Path(config_file)

        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")

        with open(config_file, "r") as f:
            config_dict = json.load(f)

        # Ignore comments or metadata fields that aren't part of the model
        config_dict = {k: v for k, v in config_dict.items() if k in cls.model_fields}

        return cls(**config_dict)

    def save(self, config_file: Path, pretty: bool = True) -> None:
        """Save current configuration to a JSON file."""
        config_file = Path(config_file)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json")

        with open(config_file, "w") as f:
            if pretty:
                json.dump(config_dict, f, indent=2, sort_keys=False)
                f.write("\n")
            else:
                json.dump(config_dict, f)

    def merge_with(self, **overrides) -> "CLIConfig":
        """Create a new config with specified overrides."""
        config_dict = self.model_dump()
        config_dict.update(overrides)
        return CLIConfig(**config_dict)

    def get_field_source(self, field_name: str, check_env: bool = True, check_default: bool = True) -> str:
        """
        Determine the source of a configuration field value.

        Returns:
            String indicating source: "env", "override", or "default"
        """
        if not check_env and not check_default:
            return "unknown"

        current_value = getattr(self, field_name)

        if check_default:
            default_value = type(self).model_fields[field_name].default
            if field_name in ("table_types_yaml", "log_dir"):
                default_value = _resolve(default_value)
            if current_value == default_value:
                return "default"

        if check_env and os.getenv(f"{ENV_PREFIX}{field_name.upper()}") is not None:
            return "env"

        return "override"


class ConfigProfile:
    """
    Predefined configuration profiles for common use cases.
    """

    @staticmethod
    def sequential() -> CLIConfig:
        """One worker, never auto-parallel. Useful for debugging."""
        return CLIConfig(
            verbose=True,
            workers=1,
            parallel_threshold_bytes=2**62,
        )

    @staticmethod
    def parallel() -> CLIConfig:
        """All cores for every run, regardless of download size."""
        return CLIConfig(
            workers=os.cpu_count() or 1,
            force_parallel=True,
        )


def _explicit(config: CLIConfig) -> dict:
    """Only the fields that were set explicitly (not defaulted)."""
    return {name: getattr(config, name) for name in config.model_fields_set}


def _layer_file(config: CLIConfig, path: Path) -> CLIConfig:
    try:
        file_config = CLIConfig.from_file(path)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Ignoring config file {path}: {e}")
        return config
    return config.merge_with(**_explicit(file_config))


def load_config_with_precedence(
    config_file: Optional[Path] = None,
    check_env: bool = True,
    check_user_config: bool = True,
    check_project_config: bool = True,
    **overrides
) -> CLIConfig:
    """
    Load configuration with proper precedence handling.

    Precedence (highest to lowest):
    1. Explicit overrides (**overrides)
    2. Specified config file (config_file parameter)
    3. Project-local config (./.tablestack_config.json)
    4. User config (~/.tablestack_config.json)
    5. Environment variables (TABLESTACK_*)
    6. Defaults

    Returns:
        CLIConfig instance with merged configuration
    """
    config = CLIConfig()

    if check_env:
        try:
            env_config = CLIConfig.from_env()
        except (ValueError, ValidationError) as e:
            logger.warning(f"Ignoring invalid {ENV_PREFIX}* environment settings: {e}")
        else:
            config = config.merge_with(**_explicit(env_config))

    user_config_path = Path.home() / CONFIG_FILENAME
    if check_user_config and user_config_path.exists():
        config = _layer_file(config, user_config_path)

    project_config_path = Path.cwd() / CONFIG_FILENAME
    if check_project_config and project_config_path.exists() and project_config_path != user_config_path:
        config = _layer_file(config, project_config_path)

    if config_file is not None:
        config = config.merge_with(**_explicit(CLIConfig.from_file(Path(config_file))))

    if overrides:
        config = config.merge_with(**overrides)

    return config
