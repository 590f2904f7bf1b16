# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader. Merges an optional YAML file with the CI environment and
produces a validated, frozen RelpackConfig.

The loading pipeline is deliberately simple and linear:
  1. Read the YAML file, if one was given, into a plain dict
  2. Take the release identity from the environment, toolchain overrides on top
  3. Hand the merged dict to pydantic for schema validation
  4. Return the frozen, immutable config object

This runs exactly once, before anything else happens. The rest of the
pipeline only ever sees the returned object and never looks at os.environ
again. If anything is missing or malformed we fail right here, before a
single build or file write.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from relpack.config.exceptions import ConfigLoadError, ConfigValidationError
from relpack.config.schema import RelpackConfig

# Environment variable -> release field. Checked in order; the first
# non-empty value wins.
RELEASE_ENV_VARS: dict[str, tuple[str, ...]] = {
    "target": ("TARGET",),
    "project_name": ("PROJECT_NAME",),
    "release_tag": ("RELEASE_TAG", "TRAVIS_TAG"),
}

TOOLCHAIN_ENV_VARS: dict[str, str] = {
    "cargo": "RELPACK_CARGO",
    "strip": "RELPACK_STRIP",
    "target_dir": "CARGO_TARGET_DIR",
}


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed dict.

    We explicitly check for file existence and readability before parsing,
    because yaml.safe_load gives cryptic errors on missing files.

    Raises:
        ConfigLoadError: If the file doesn't exist, isn't readable, or isn't valid YAML.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    # An empty file is fine: everything can come from the environment.
    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def _first_set(environ: Mapping[str, str], names: tuple[str, ...]) -> Optional[str]:
    """Return the first non-empty value among `names`, or None."""
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return None


def _section(raw_data: dict[str, Any], key: str) -> dict[str, Any]:
    section = raw_data.get(key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigLoadError(f"Config section '{key}' must be a mapping, got {type(section).__name__}")
    return dict(section)


def _overlay_environment(raw_data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Build the release identity from the environment and apply toolchain
    overrides on top of the file values.

    The identity never comes from the file: the CI matrix decides which
    target a given job builds, and a checked-in value would hide a job that
    forgot to set TARGET. Empty strings are treated as unset, so `TARGET=`
    is reported as missing rather than producing an artifact called
    `demo-v1.0-`.
    """
    if "release" in raw_data:
        raise ConfigLoadError(
            "Config file must not contain a 'release' section: set TARGET, "
            "PROJECT_NAME and RELEASE_TAG in the environment instead"
        )

    merged = dict(raw_data)

    release: dict[str, Any] = {}
    for field_name, env_names in RELEASE_ENV_VARS.items():
        value = _first_set(environ, env_names)
        if value is not None:
            release[field_name] = value
    merged["release"] = release

    toolchain = _section(raw_data, "toolchain")
    for field_name, env_name in TOOLCHAIN_ENV_VARS.items():
        value = environ.get(env_name)
        if value:
            toolchain[field_name] = value
    merged["toolchain"] = toolchain

    return merged


def _check_required_release_values(release: dict[str, Any]) -> None:
    """
    Report every missing identity value at once, by env var name.

    Pydantic would catch these too, but its message talks about
    `release.target` while the person reading the CI log set TARGET.
    """
    missing = [
        " or ".join(env_names)
        for field_name, env_names in RELEASE_ENV_VARS.items()
        if not release.get(field_name)
    ]
    if missing:
        raise ConfigValidationError(
            "Missing required release settings: " + ", ".join(missing)
        )


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RelpackConfig:
    """
    Load, validate, and freeze the run configuration.

    This is the single entry point for config loading in the entire system.
    After this function returns, the config is guaranteed to be:
      - complete (project name, tag and target are all present and non-empty)
      - type-safe (all values match their declared types)
      - immutable (frozen pydantic model, no mutation possible)

    Args:
        config_path: Optional path to a YAML config file.
        environ: Environment mapping to read from. Defaults to os.environ;
                 tests pass a plain dict instead of patching the process env.

    Returns:
        A fully validated, frozen RelpackConfig instance.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Missing identity values or schema violations.
    """
    if environ is None:
        environ = os.environ

    raw_data = _read_yaml_file(config_path) if config_path is not None else {}
    merged = _overlay_environment(raw_data, environ)
    _check_required_release_values(merged["release"])

    source = str(config_path) if config_path is not None else "environment"
    try:
        config = RelpackConfig.model_validate(merged)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {source}:\n{err}"
        ) from err

    return config
