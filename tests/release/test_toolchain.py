# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for CargoToolchain.

These run real subprocesses against the fake `cargo` and `strip` scripts
from conftest, so they cover command construction, exit code handling and
the output layout without needing a Rust toolchain or binutils.
"""

from pathlib import Path

import pytest

from conftest import UNSUPPORTED_TARGET, posix_only
from relpack.config.schema import ReleaseIdentity, ToolchainConfig
from relpack.release.exceptions import BuildFailure, StripFailure
from relpack.release.toolchain import CargoToolchain


def _toolchain(tools: Path, project_dir: Path, **overrides: object) -> CargoToolchain:
    config = ToolchainConfig(
        cargo=str(tools / "cargo"),
        strip=str(tools / "strip"),
        **overrides,  # type: ignore[arg-type]
    )
    return CargoToolchain(config, project_dir)


class TestCommands:
    def test_build_command(self, identity: ReleaseIdentity, project_dir: Path) -> None:
        toolchain = CargoToolchain(ToolchainConfig(), project_dir)
        assert toolchain.build_command(identity) == [
            "cargo",
            "build",
            "--target",
            "x86_64-unknown-linux-gnu",
            "--release",
        ]

    def test_build_args_are_appended(self, identity: ReleaseIdentity, project_dir: Path) -> None:
        toolchain = CargoToolchain(ToolchainConfig(build_args=["--locked"]), project_dir)
        assert toolchain.build_command(identity)[-1] == "--locked"

    def test_strip_command(self, project_dir: Path) -> None:
        toolchain = CargoToolchain(ToolchainConfig(strip_args=["--strip-all"]), project_dir)
        assert toolchain.strip_command(Path("/tmp/demo")) == ["strip", "--strip-all", "/tmp/demo"]

    def test_relative_program_paths_are_anchored_at_project_dir(
        self, identity: ReleaseIdentity, project_dir: Path
    ) -> None:
        config = ToolchainConfig(cargo="./tools/cargo", strip="tools/strip")
        toolchain = CargoToolchain(config, project_dir)
        assert toolchain.build_command(identity)[0] == str(project_dir / "tools" / "cargo")
        assert toolchain.strip_command(Path("/tmp/demo"))[0] == str(project_dir / "tools" / "strip")

    def test_binary_path_uses_configured_layout(self, identity: ReleaseIdentity, project_dir: Path) -> None:
        toolchain = CargoToolchain(ToolchainConfig(target_dir="build-out"), project_dir)
        expected = project_dir / "build-out" / "x86_64-unknown-linux-gnu" / "release" / "demo"
        assert toolchain.binary_path(identity) == expected


@posix_only
class TestBuild:
    def test_build_returns_binary_path(
        self,
        identity: ReleaseIdentity,
        fake_tools_dir: Path,
        project_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("PROJECT_NAME", "demo")
        monkeypatch.delenv("CARGO_TARGET_DIR", raising=False)
        toolchain = _toolchain(fake_tools_dir, project_dir)

        built = toolchain.build(identity)

        assert built == project_dir / "target" / "x86_64-unknown-linux-gnu" / "release" / "demo"
        assert built.is_file()

    def test_custom_target_dir_is_passed_to_cargo(
        self,
        identity: ReleaseIdentity,
        fake_tools_dir: Path,
        project_dir: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("PROJECT_NAME", "demo")
        shared = tmp_path / "shared-target"
        toolchain = _toolchain(fake_tools_dir, project_dir, target_dir=str(shared))

        built = toolchain.build(identity)

        assert built == shared / "x86_64-unknown-linux-gnu" / "release" / "demo"
        assert built.is_file()

    def test_nonzero_exit_is_build_failure(
        self,
        fake_tools_dir: Path,
        project_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("PROJECT_NAME", "demo")
        identity = ReleaseIdentity(project_name="demo", release_tag="v1.2.3", target=UNSUPPORTED_TARGET)

        with pytest.raises(BuildFailure) as excinfo:
            _toolchain(fake_tools_dir, project_dir).build(identity)

        assert excinfo.value.exit_code == 101
        assert not (project_dir / "target").exists()

    def test_missing_build_program_is_build_failure(
        self, identity: ReleaseIdentity, tmp_path: Path, project_dir: Path
    ) -> None:
        toolchain = CargoToolchain(ToolchainConfig(cargo=str(tmp_path / "no-cargo")), project_dir)
        with pytest.raises(BuildFailure, match="Cannot run build program"):
            toolchain.build(identity)


@posix_only
class TestStrip:
    def test_strip_rewrites_in_place(self, fake_tools_dir: Path, project_dir: Path, tmp_path: Path) -> None:
        artifact = tmp_path / "artifact"
        artifact.write_text("#!/bin/sh\necho hi\n# debug-info\n# debug-info\n")

        _toolchain(fake_tools_dir, project_dir).strip(artifact)

        assert artifact.read_text() == "#!/bin/sh\necho hi\n"

    def test_missing_strip_program_is_strip_failure(self, tmp_path: Path, project_dir: Path) -> None:
        artifact = tmp_path / "artifact"
        artifact.write_bytes(b"x")
        toolchain = CargoToolchain(ToolchainConfig(strip=str(tmp_path / "no-strip")), project_dir)

        with pytest.raises(StripFailure, match="Cannot run strip program"):
            toolchain.strip(artifact)

    def test_nonzero_exit_is_strip_failure(self, fake_tools_dir: Path, project_dir: Path, tmp_path: Path) -> None:
        # The fake strip fails on a file that doesn't exist, like the real one.
        with pytest.raises(StripFailure) as excinfo:
            _toolchain(fake_tools_dir, project_dir).strip(tmp_path / "missing")
        assert excinfo.value.exit_code not in (None, 0)
