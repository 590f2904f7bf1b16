# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release packager. Turns a built binary into a named, stripped artifact.

A finished run leaves exactly one new file in the working directory:

    <workdir>/<project>-<tag>-<target>

The order is fixed: copy first, flushed to storage, then strip in place.
Stripping a partially written copy would corrupt the artifact, so strip
never starts until durable_copy has returned.

Re-running the packager against the same build output overwrites the
artifact and produces the same bytes, as long as strip itself is
deterministic.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from relpack.config.schema import ReleaseIdentity
from relpack.logging.logger import get_logger
from relpack.release.exceptions import CopyFailure, MissingArtifactError, StripFailure
from relpack.release.naming import artifact_path
from relpack.release.toolchain import Toolchain
from relpack.utils.filesystem import durable_copy
from relpack.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class PackageResult:
    """Outcome of a successful copy + strip."""

    artifact: Path
    source: Path
    size_before_strip: int
    size_after_strip: int
    sha256: str


def _is_executable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def check_built_binary(source: Path) -> None:
    """
    Verify the build output is a regular, executable file.

    Raises:
        MissingArtifactError: If it's missing, not a regular file, or not executable.
    """
    if not source.exists():
        raise MissingArtifactError(
            f"Built binary not found at {source}. "
            f"The build did not run, or wrote its output somewhere else."
        )
    if not source.is_file():
        raise MissingArtifactError(f"Built binary path is not a regular file: {source}")
    if not os.access(source, os.X_OK):
        raise MissingArtifactError(f"Built binary is not executable: {source}")


def copy_artifact(source: Path, destination: Path) -> int:
    """
    Copy the built binary to the artifact path. Returns the artifact size.

    The source is checked before the destination is touched, so a missing
    build output never creates or clobbers an artifact.

    Raises:
        MissingArtifactError: If the source isn't an executable regular file.
        CopyFailure: For any filesystem error during the copy, including a
                     directory already sitting at the destination.
    """
    check_built_binary(source)

    try:
        durable_copy(source, destination)
    except OSError as err:
        raise CopyFailure(f"Cannot copy {source} to {destination}: {err}") from err

    size = destination.stat().st_size
    _logger.info(
        "Copied build output",
        extra={"source": str(source), "artifact": str(destination), "size_bytes": size},
    )
    return size


def strip_artifact(path: Path, toolchain: Toolchain, size_before: int) -> int:
    """
    Strip `path` in place and check the result is still publishable.

    Returns the stripped size.

    Raises:
        StripFailure: If strip fails, or the file afterwards is missing,
                      no longer executable, or bigger than before.
    """
    toolchain.strip(path)

    if not _is_executable_file(path):
        raise StripFailure(f"Artifact is missing or no longer executable after strip: {path}")

    size_after = path.stat().st_size
    if size_after > size_before:
        raise StripFailure(
            f"Artifact grew during strip ({size_before} -> {size_after} bytes): {path}"
        )

    _logger.info(
        "Stripped artifact",
        extra={
            "artifact": str(path),
            "size_before": size_before,
            "size_after": size_after,
            "saved_bytes": size_before - size_after,
        },
    )
    return size_after


def package(
    identity: ReleaseIdentity,
    built_binary: Path,
    workdir: Path,
    toolchain: Toolchain,
) -> PackageResult:
    """
    Copy the built binary to its release name and strip it.

    This is the packaging half of the pipeline. If stripping fails, the
    unstripped copy is deleted before the error propagates: CI upload steps
    often glob the working directory, and an unstripped binary must never be
    shipped as if it were a finished artifact.

    Args:
        identity: Project name, tag and target for the artifact name.
        built_binary: Path to the toolchain's release binary.
        workdir: Directory the artifact is written to.
        toolchain: Provides the strip operation.

    Returns:
        PackageResult describing the finished artifact.

    Raises:
        MissingArtifactError: If `built_binary` isn't there.
        CopyFailure: If the copy fails.
        StripFailure: If stripping fails (the artifact is removed first).
    """
    destination = artifact_path(identity, workdir)

    _logger.info(
        "Packaging release artifact",
        extra={"artifact": destination.name, "workdir": str(workdir)},
    )

    size_before = copy_artifact(built_binary, destination)

    try:
        size_after = strip_artifact(destination, toolchain, size_before)
    except StripFailure:
        if destination.is_file():
            destination.unlink()
            _logger.warning(
                "Removed unstripped artifact after strip failure",
                extra={"artifact": str(destination)},
            )
        raise

    digest = compute_sha256(destination)
    _logger.info(
        "Release artifact ready",
        extra={
            "artifact": str(destination),
            "size_bytes": size_after,
            "sha256": digest,
        },
    )

    return PackageResult(
        artifact=destination,
        source=built_binary,
        size_before_strip=size_before,
        size_after_strip=size_after,
        sha256=digest,
    )
