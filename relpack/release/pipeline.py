# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The build → copy → strip pipeline.

Strictly sequential, fail-fast. Each step only starts when the previous one
returned normally; the first exception ends the run and propagates to the
caller untouched. In particular a failed build means the packager never
runs, so no artifact is created or modified.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from relpack.config.schema import RelpackConfig
from relpack.logging.logger import get_logger
from relpack.release.naming import artifact_path
from relpack.release.packaging.packager import PackageResult, package
from relpack.release.toolchain import Toolchain

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """What a run did. `package` is None for dry runs."""

    built_binary: Path
    artifact: Path
    built: bool
    dry_run: bool
    package: Optional[PackageResult] = None


def run_pipeline(
    config: RelpackConfig,
    toolchain: Toolchain,
    workdir: Path,
    skip_build: bool = False,
    dry_run: bool = False,
) -> PipelineResult:
    """
    Build the release binary for one target and package it.

    Args:
        config: Validated run configuration. Only `config.release` is read
                here; toolchain settings already live inside `toolchain`.
        toolchain: Compiler + stripper to drive.
        workdir: Where the artifact is written.
        skip_build: Package an existing build output without rebuilding.
        dry_run: Resolve and log both paths, touch nothing.

    Returns:
        PipelineResult describing the run.

    Raises:
        BuildFailure, MissingArtifactError, CopyFailure, StripFailure:
            the first step that failed.
    """
    identity = config.release
    destination = artifact_path(identity, workdir)
    expected_binary = toolchain.binary_path(identity)

    _logger.info(
        "Release pipeline started",
        extra={
            "project_name": identity.project_name,
            "release_tag": identity.release_tag,
            "target": identity.target,
            "built_binary": str(expected_binary),
            "artifact": str(destination),
            "skip_build": skip_build,
            "dry_run": dry_run,
        },
    )

    if dry_run:
        _logger.info("Dry run: no build, copy or strip performed")
        return PipelineResult(
            built_binary=expected_binary,
            artifact=destination,
            built=False,
            dry_run=True,
        )

    if skip_build:
        built_binary = expected_binary
        _logger.info("Skipping build, packaging existing output")
    else:
        built_binary = toolchain.build(identity)
        _logger.info("Build finished", extra={"built_binary": str(built_binary)})

    result = package(identity, built_binary, workdir, toolchain)

    _logger.info("Release pipeline finished", extra={"artifact": str(result.artifact)})
    return PipelineResult(
        built_binary=built_binary,
        artifact=result.artifact,
        built=not skip_build,
        dry_run=False,
        package=result,
    )
