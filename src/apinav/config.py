"""Project configuration loading and precedence resolution.

This module handles the ``apinav`` configuration file:

* **Project config** -- ``apinav.yaml``, ``apinav.yml`` or ``apinav.json`` in
  the working directory (or an explicit path), deserialised into a
  :class:`~apinav.models.NavigatorConfig`.  See :func:`load_config`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the project config, and model defaults into the
  effective configuration.
* **Source construction** -- :func:`spec_source_from_config` turns the
  configured ``spec`` string into a file or URL source carrying the
  configured headers and limits.

Configuration files are read-only inputs; nothing here writes to disk.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from apinav.exceptions import ConfigError
from apinav.models import FileSource, NavigatorConfig, UrlSource
from apinav.parser.loader import resolve_spec_source

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILENAMES = ("apinav.yaml", "apinav.yml", "apinav.json")

ENV_SPEC = "APINAV_SPEC"
ENV_OUTPUT_DIR = "APINAV_OUTPUT_DIR"


def find_project_config(directory: Optional[Path] = None) -> Optional[Path]:
    """Return the first project config file found in *directory* (default: cwd)."""
    base = directory or Path.cwd()
    for name in PROJECT_CONFIG_FILENAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Optional[Union[str, Path]] = None) -> NavigatorConfig:
    """Load and validate a configuration file.

    Args:
        path: Explicit config file.  When omitted the working directory is
            searched for :data:`PROJECT_CONFIG_FILENAMES`; if none exists a
            default :class:`~apinav.models.NavigatorConfig` is returned.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If an explicit file does not exist, or any file
            contains invalid JSON/YAML or fails Pydantic validation.
    """
    if path is None:
        found = find_project_config()
        if found is None:
            return NavigatorConfig()
        config_path = found
    else:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")

    try:
        text = config_path.read_text(encoding="utf-8")
        if config_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid config at {config_path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {config_path}: expected a mapping at the top level")

    try:
        config = NavigatorConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {config_path}: {exc}") from exc
    logger.debug("Loaded config from %s", config_path)
    return config


def resolve_config(
    config_path: Optional[Union[str, Path]] = None,
    cli_spec: Optional[str] = None,
    cli_output_dir: Optional[str] = None,
    cli_chunk_size: Optional[int] = None,
) -> NavigatorConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_spec``, ``cli_output_dir``, ``cli_chunk_size``)
        2. Environment variables (``APINAV_SPEC``, ``APINAV_OUTPUT_DIR``)
        3. Project config file
        4. Defaults

    Raises:
        ConfigError: If the config file is invalid or a CLI override fails
            validation.
    """
    config = load_config(config_path)
    overrides: dict[str, Any] = {}

    env_spec = os.environ.get(ENV_SPEC)
    if env_spec:
        overrides["spec"] = env_spec
    env_output = os.environ.get(ENV_OUTPUT_DIR)
    if env_output:
        overrides["output_dir"] = env_output

    if cli_spec is not None:
        overrides["spec"] = cli_spec
    if cli_output_dir is not None:
        overrides["output_dir"] = cli_output_dir
    if cli_chunk_size is not None:
        overrides["chunk_size"] = cli_chunk_size

    if not overrides:
        return config
    try:
        return NavigatorConfig.model_validate({**config.model_dump(), **overrides})
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration override: {exc}") from exc


def spec_source_from_config(config: NavigatorConfig) -> Union[FileSource, UrlSource]:
    """Build the document source described by *config*."""
    return resolve_spec_source(
        config.spec,
        headers=config.headers,
        max_bytes=config.max_bytes,
        timeout_ms=config.timeout_ms,
    )
