# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The release command handler.

Turns parsed arguments into one pipeline run and maps every failure onto an
exit code. No print() calls: everything goes through the structured logger,
and the tool output itself (cargo, strip) streams straight to the terminal.
"""

import argparse
import logging
from pathlib import Path

from relpack.cli.exit_codes import (
    CONFIG_ERROR,
    RUNTIME_ERROR,
    SUCCESS,
    VALIDATION_ERROR,
)
from relpack.config.exceptions import ConfigurationError
from relpack.config.loader import load_config
from relpack.config.schema import RelpackConfig
from relpack.logging.logger import get_logger
from relpack.release.environment.validator import validate_environment
from relpack.release.exceptions import (
    BuildFailure,
    CopyFailure,
    MissingArtifactError,
    StripFailure,
)
from relpack.release.pipeline import run_pipeline
from relpack.release.toolchain import CargoToolchain
from relpack.runtime.bootstrap import bootstrap


def _load_and_bootstrap(args: argparse.Namespace) -> tuple[int, RelpackConfig | None, logging.Logger]:
    """
    Load config, run bootstrap.

    Returns a tuple of (exit_code, config, logger). If exit_code is not SUCCESS,
    the caller should return it immediately; nothing has been built or written.
    """
    logger = get_logger("relpack.cli", log_level=args.log_level or "INFO")

    config_path = Path(args.config) if args.config is not None else None
    try:
        config = load_config(config_path)
    except ConfigurationError as err:
        logger.error("Configuration error", extra={"error": str(err)})
        return CONFIG_ERROR, None, logger

    try:
        bootstrap(config.global_config, log_level=args.log_level)
    except OSError as err:
        logger.error(
            "Cannot open log file",
            extra={"log_file": config.global_config.log_file, "error": str(err)},
        )
        return CONFIG_ERROR, None, logger

    return SUCCESS, config, logger


def _resolve_directory(value: str | None, label: str) -> Path:
    """An existing directory, resolved to an absolute path. Defaults to cwd."""
    path = Path(value).resolve() if value is not None else Path.cwd()
    if not path.is_dir():
        raise ConfigurationError(f"{label} is not a directory: {path}")
    return path


def handle_release(args: argparse.Namespace) -> int:
    """Build, copy and strip one release artifact."""
    exit_code, config, logger = _load_and_bootstrap(args)
    if exit_code != SUCCESS or config is None:
        return exit_code

    try:
        workdir = _resolve_directory(args.workdir, "Working directory")
        project_dir = _resolve_directory(args.project_dir, "Project directory")
    except ConfigurationError as err:
        logger.error("Configuration error", extra={"error": str(err)})
        return CONFIG_ERROR

    checks = validate_environment(
        config.toolchain,
        check_path=workdir,
        require_build_program=not args.skip_build,
        project_dir=project_dir,
    )
    failed = [check.name for check in checks if not check.passed]
    if failed and not args.dry_run:
        logger.error("Pre-flight checks failed", extra={"failed_checks": failed})
        return VALIDATION_ERROR

    toolchain = CargoToolchain(config.toolchain, project_dir)

    try:
        result = run_pipeline(
            config,
            toolchain,
            workdir,
            skip_build=args.skip_build,
            dry_run=args.dry_run,
        )
    except BuildFailure as err:
        logger.error("Build failed", extra={"error": str(err), "exit_code": err.exit_code})
        return RUNTIME_ERROR
    except MissingArtifactError as err:
        logger.error("Built binary missing", extra={"error": str(err)})
        return VALIDATION_ERROR
    except CopyFailure as err:
        logger.error("Copy failed", extra={"error": str(err)})
        return RUNTIME_ERROR
    except StripFailure as err:
        logger.error("Strip failed", extra={"error": str(err), "exit_code": err.exit_code})
        return RUNTIME_ERROR
    except Exception as err:
        logger.error("Runtime error", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    logger.info(
        "Release command completed",
        extra={"artifact": str(result.artifact), "dry_run": result.dry_run},
    )
    return SUCCESS
