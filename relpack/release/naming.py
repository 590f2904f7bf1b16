# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path conventions for build output and release artifacts.

Both paths are pure functions of the release identity. Nothing here touches
the filesystem, so the same identity always yields the same paths.
"""

from pathlib import Path

from relpack.config.schema import ReleaseIdentity

ARTIFACT_NAME_SEPARATOR = "-"


def artifact_name(identity: ReleaseIdentity) -> str:
    """`<project>-<tag>-<target>`, e.g. `demo-v1.2.3-x86_64-unknown-linux-gnu`."""
    return ARTIFACT_NAME_SEPARATOR.join(
        (identity.project_name, identity.release_tag, identity.target)
    )


def artifact_path(identity: ReleaseIdentity, workdir: Path) -> Path:
    return workdir / artifact_name(identity)


def built_binary_path(
    identity: ReleaseIdentity,
    project_dir: Path,
    target_dir: str = "target",
    release_dir: str = "release",
) -> Path:
    """
    Where cargo leaves the release binary for a cross-compiled target.

    An absolute `target_dir` (e.g. from CARGO_TARGET_DIR) replaces the
    project directory as the base, the same way cargo treats it.
    """
    return project_dir / target_dir / identity.target / release_dir / identity.project_name
