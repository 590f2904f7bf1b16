# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The two external tools the pipeline drives: the compiler and `strip`.

Both sit behind the small Toolchain protocol so the pipeline and packager
can be exercised with a fake in tests, without cargo or binutils installed.

CargoToolchain is the real thing. It runs the subprocess, lets its output
stream straight into the job log, and looks only at the exit code. There is
no timeout (the CI runner owns job time limits), no shell=True and no retry:
a failed compile is a real compile error, and retrying would only hide it.
"""

import os
import subprocess
import time
from pathlib import Path
from typing import Optional, Protocol

from relpack.config.schema import ReleaseIdentity, ToolchainConfig
from relpack.logging.logger import get_logger
from relpack.release.exceptions import BuildFailure, StripFailure
from relpack.release.naming import built_binary_path

logger = get_logger(__name__)


class Toolchain(Protocol):
    """What the pipeline needs from a compiler + stripper pair."""

    def build(self, identity: ReleaseIdentity) -> Path:
        """Build `identity.project_name` for `identity.target`; return the binary path."""
        ...

    def binary_path(self, identity: ReleaseIdentity) -> Path:
        """Where `build` leaves (or left) the binary for this identity."""
        ...

    def strip(self, path: Path) -> None:
        """Strip debug symbols from `path` in place."""
        ...


def resolve_program(program: str, base_dir: Path) -> str:
    """
    Anchor a relative program path like `./tools/cargo` at `base_dir`.

    Bare names are left for PATH lookup and absolute paths are kept as is.
    """
    if os.path.dirname(program) and not os.path.isabs(program):
        return str(base_dir / program)
    return program


class CargoToolchain:
    """
    Runs `cargo build --target <T> --release` and `strip <file>`.

    Program paths with a directory part are relative to `project_dir`, for
    both tools, whatever directory relpack itself was started from.

    Args:
        config: Program names, output layout and extra arguments.
        project_dir: Directory cargo runs in (the one with Cargo.toml).
    """

    def __init__(self, config: ToolchainConfig, project_dir: Path) -> None:
        self._config = config
        self._project_dir = project_dir

    def build_command(self, identity: ReleaseIdentity) -> list[str]:
        return [
            resolve_program(self._config.cargo, self._project_dir),
            "build",
            "--target",
            identity.target,
            "--release",
            *self._config.build_args,
        ]

    def strip_command(self, path: Path) -> list[str]:
        return [resolve_program(self._config.strip, self._project_dir), *self._config.strip_args, str(path)]

    def binary_path(self, identity: ReleaseIdentity) -> Path:
        return built_binary_path(
            identity,
            self._project_dir,
            target_dir=self._config.target_dir,
            release_dir=self._config.release_dir,
        )

    def _child_env(self) -> dict[str, str]:
        """
        Inherit the job environment, pinning CARGO_TARGET_DIR when the layout
        isn't cargo's default so cargo writes where binary_path() looks.
        """
        env = dict(os.environ)
        if self._config.target_dir != "target":
            env["CARGO_TARGET_DIR"] = self._config.target_dir
        return env

    def build(self, identity: ReleaseIdentity) -> Path:
        command = self.build_command(identity)
        logger.info(
            "Build started",
            extra={"command": command, "cwd": str(self._project_dir), "target": identity.target},
        )

        try:
            exit_code = _run(command, cwd=self._project_dir, env=self._child_env())
        except OSError as err:
            raise BuildFailure(f"Cannot run build program {self._config.cargo}: {err}") from err

        if exit_code != 0:
            raise BuildFailure(
                f"Build for target {identity.target} failed with exit code {exit_code}",
                exit_code=exit_code,
            )

        return self.binary_path(identity)

    def strip(self, path: Path) -> None:
        command = self.strip_command(path)
        logger.info("Strip started", extra={"command": command})

        try:
            exit_code = _run(command)
        except OSError as err:
            raise StripFailure(f"Cannot run strip program {self._config.strip}: {err}") from err

        if exit_code != 0:
            raise StripFailure(
                f"Stripping {path.name} failed with exit code {exit_code}",
                exit_code=exit_code,
            )


def _run(
    command: list[str],
    cwd: Optional[Path] = None,
    env: Optional[dict[str, str]] = None,
) -> int:
    """
    Run a command to completion with its output uncaptured.

    Raises:
        OSError: The executable is missing or can't be started.
    """
    start = time.monotonic()
    completed = subprocess.run(
        command,
        cwd=str(cwd) if cwd is not None else None,
        env=env,
        check=False,
    )

    logger.debug(
        "Command finished",
        extra={
            "program": command[0],
            "exit_code": completed.returncode,
            "elapsed_seconds": round(time.monotonic() - start, 3),
        },
    )
    return completed.returncode
