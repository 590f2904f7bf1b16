# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Custom exceptions for the configuration system.

We keep these separate so that the CLI can catch config-specific failures
without importing the entire config machinery. Any of these means the
pipeline never started: no build ran and no file was written.
"""


class ConfigurationError(Exception):
    """Base for all configuration errors."""


class ConfigLoadError(ConfigurationError):
    """Raised when a config file cannot be read from disk or parsed as YAML."""


class ConfigValidationError(ConfigurationError):
    """
    Raised when the merged file + environment values fail schema validation.
    This covers a missing TARGET, PROJECT_NAME or release tag, empty values,
    values that aren't usable as a file name, and unknown keys.
    """
