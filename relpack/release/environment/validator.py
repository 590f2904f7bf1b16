# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Pre-flight environment validation.

Before a release run, check:
- Python version
- the build program is on PATH
- the strip program is on PATH
- disk space in the working directory

Fail early with clear errors. A missing `strip` should stop the job before
a ten-minute cross-compile, not after it.
"""

import logging
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path

from relpack.config.schema import ToolchainConfig
from relpack.logging.logger import get_logger
from relpack.release.toolchain import resolve_program

_logger: logging.Logger = get_logger(__name__)

MINIMUM_PYTHON_MAJOR = 3
MINIMUM_PYTHON_MINOR = 11
MIN_DISK_SPACE_BYTES: int = 64 * 1024 * 1024  # 64 MiB, room for one release binary


@dataclass(frozen=True)
class EnvironmentCheck:
    """Result of a single environment check."""

    name: str
    passed: bool
    message: str
    value: str


def check_python_version(version_info: tuple[int, int, int] | None = None) -> EnvironmentCheck:
    """Verify Python >= 3.11. `version_info` defaults to the running interpreter."""
    major, minor, micro = version_info or tuple(sys.version_info[:3])
    version_str = f"{major}.{minor}.{micro}"
    passed = major > MINIMUM_PYTHON_MAJOR or (major == MINIMUM_PYTHON_MAJOR and minor >= MINIMUM_PYTHON_MINOR)
    if passed:
        msg = f"Python {version_str} meets minimum {MINIMUM_PYTHON_MAJOR}.{MINIMUM_PYTHON_MINOR}"
    else:
        msg = f"Python {version_str} does NOT meet minimum {MINIMUM_PYTHON_MAJOR}.{MINIMUM_PYTHON_MINOR}"
    return EnvironmentCheck(name="python_version", passed=passed, message=msg, value=version_str)


def check_program(name: str, program: str) -> EnvironmentCheck:
    """
    Check that `program` resolves to an executable.

    `program` may be a bare name looked up on PATH or a path to a file.
    """
    resolved = shutil.which(program)
    if resolved is None:
        return EnvironmentCheck(
            name=name,
            passed=False,
            message=f"'{program}' not found on PATH",
            value="not_found",
        )
    return EnvironmentCheck(
        name=name,
        passed=True,
        message=f"'{program}' resolved to {resolved}",
        value=resolved,
    )


def check_disk_space(path: Path | None = None) -> EnvironmentCheck:
    """
    Check available disk space at the given path.

    Args:
        path: Directory to check. Defaults to current working directory.
    """
    check_path = path or Path.cwd()
    try:
        usage = shutil.disk_usage(str(check_path))
    except OSError as err:
        return EnvironmentCheck(
            name="disk_space",
            passed=False,
            message=f"Cannot check disk space: {err}",
            value="error",
        )

    free_mb = usage.free / (1024**2)
    min_mb = MIN_DISK_SPACE_BYTES / (1024**2)
    passed = usage.free >= MIN_DISK_SPACE_BYTES
    if passed:
        msg = f"{free_mb:.0f} MB free (minimum {min_mb:.0f} MB)"
    else:
        msg = f"Only {free_mb:.0f} MB free, need at least {min_mb:.0f} MB"
    return EnvironmentCheck(
        name="disk_space",
        passed=passed,
        message=msg,
        value=f"{free_mb:.0f}MB",
    )


def validate_environment(
    toolchain: ToolchainConfig,
    check_path: Path | None = None,
    require_build_program: bool = True,
    project_dir: Path | None = None,
) -> list[EnvironmentCheck]:
    """
    Run all pre-flight environment checks.

    Returns a list of check results. Callers inspect the `passed` field of
    each check to decide whether to proceed.

    Args:
        toolchain: Names the build and strip programs to look for.
        check_path: Directory for the disk space check (the working directory).
        require_build_program: False when packaging an existing build, so a
            runner without cargo can still package.
        project_dir: Where relative program paths are anchored, matching
            how the toolchain runs them. Defaults to the current directory.

    Returns:
        List of EnvironmentCheck results, one per check.
    """
    base_dir = project_dir or Path.cwd()
    checks = [check_python_version()]
    if require_build_program:
        checks.append(check_program("build_program", resolve_program(toolchain.cargo, base_dir)))
    checks.append(check_program("strip_program", resolve_program(toolchain.strip, base_dir)))
    checks.append(check_disk_space(check_path))

    passed_count = sum(1 for c in checks if c.passed)
    failed_count = len(checks) - passed_count

    for check in checks:
        log_fn = _logger.info if check.passed else _logger.error
        log_fn(
            "Environment check",
            extra={
                "check": check.name,
                "passed": check.passed,
                "check_message": check.message,
            },
        )

    _logger.info(
        "Environment validation complete",
        extra={"passed": passed_count, "failed": failed_count},
    )

    return checks
