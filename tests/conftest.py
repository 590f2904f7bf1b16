# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for relpack tests.

Two kinds of stand-in toolchain live here:
  - FakeToolchain, an in-process implementation of the Toolchain protocol
    for pipeline and packager tests.
  - fake `cargo` / `strip` shell scripts for tests that go through a real
    subprocess (CargoToolchain and the CLI).

Both produce the same kind of "binary": a small shell script padded with
`# debug-info` lines, which stripping removes. That keeps it executable,
lets us compare its output before and after stripping, and makes strip
shrink the file deterministically.
"""

import logging
import os
import stat
import textwrap
from collections.abc import Iterator
from pathlib import Path

import pytest

from relpack.config.schema import ReleaseIdentity, RelpackConfig
from relpack.logging.logger import close_package_log_file
from relpack.release.exceptions import BuildFailure, StripFailure

DEBUG_MARKER = "# debug-info"
UNSUPPORTED_TARGET = "unsupported-unknown-none"

posix_only = pytest.mark.skipif(os.name != "posix", reason="uses shell-script stand-ins for binaries")
posix_non_root = pytest.mark.skipif(
    os.name != "posix" or os.geteuid() == 0,
    reason="root can write to read-only files",
)


def fake_binary_content(project_name: str) -> bytes:
    body = f"#!/bin/sh\necho \"{project_name} ok\"\n"
    return (body + f"{DEBUG_MARKER}\n" * 32).encode("utf-8")


def write_executable(path: Path, content: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class FakeToolchain:
    """
    In-process Toolchain. Records every call so tests can check ordering.

    strip_mode:
      "ok"         drop the debug marker lines
      "fail"       raise StripFailure
      "grow"       append bytes instead of removing them
      "noexec"     strip, then clear the executable bits
    """

    def __init__(self, project_dir: Path, strip_mode: str = "ok") -> None:
        self.project_dir = project_dir
        self.strip_mode = strip_mode
        self.calls: list[tuple[str, str]] = []

    def binary_path(self, identity: ReleaseIdentity) -> Path:
        return self.project_dir / "target" / identity.target / "release" / identity.project_name

    def build(self, identity: ReleaseIdentity) -> Path:
        self.calls.append(("build", identity.target))
        if identity.target == UNSUPPORTED_TARGET:
            raise BuildFailure(f"target {identity.target} not supported", exit_code=101)
        return write_executable(self.binary_path(identity), fake_binary_content(identity.project_name))

    def strip(self, path: Path) -> None:
        self.calls.append(("strip", path.name))
        if self.strip_mode == "fail":
            raise StripFailure(f"cannot strip {path.name}", exit_code=1)
        if self.strip_mode == "grow":
            with open(path, "ab") as f:
                f.write(b"# grown\n")
            return
        lines = path.read_bytes().splitlines(keepends=True)
        kept = [line for line in lines if not line.startswith(DEBUG_MARKER.encode("utf-8"))]
        with open(path, "wb") as f:
            f.write(b"".join(kept))
        if self.strip_mode == "noexec":
            path.chmod(0o644)


@pytest.fixture()
def identity() -> ReleaseIdentity:
    return ReleaseIdentity(
        project_name="demo",
        release_tag="v1.2.3",
        target="x86_64-unknown-linux-gnu",
    )


@pytest.fixture()
def release_config(identity: ReleaseIdentity) -> RelpackConfig:
    return RelpackConfig.model_validate({"release": identity.model_dump()})


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture()
def workdir(tmp_path: Path) -> Path:
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture()
def fake_toolchain(project_dir: Path) -> FakeToolchain:
    return FakeToolchain(project_dir)


@pytest.fixture()
def fake_tools_dir(tmp_path: Path) -> Path:
    """
    A directory holding fake `cargo` and `strip` executables.

    The fake cargo understands `build --target <T> --release`, writes a
    fake binary named $PROJECT_NAME under ${CARGO_TARGET_DIR:-target}, and
    exits 101 for UNSUPPORTED_TARGET, the way cargo does for a missing
    target. The fake strip drops the debug marker lines in place.
    """
    tools = tmp_path / "bin"
    tools.mkdir()

    cargo_script = textwrap.dedent(f"""\
        #!/bin/sh
        target=""
        while [ $# -gt 0 ]; do
            case "$1" in
                --target) target="$2"; shift 2 ;;
                *) shift ;;
            esac
        done
        if [ "$target" = "{UNSUPPORTED_TARGET}" ]; then
            echo "error: target $target is not installed" >&2
            exit 101
        fi
        out="${{CARGO_TARGET_DIR:-target}}/$target/release"
        mkdir -p "$out"
        printf '#!/bin/sh\\necho "%s ok"\\n' "$PROJECT_NAME" > "$out/$PROJECT_NAME"
        i=0
        while [ $i -lt 32 ]; do
            echo "{DEBUG_MARKER}" >> "$out/$PROJECT_NAME"
            i=$((i + 1))
        done
        chmod 755 "$out/$PROJECT_NAME"
    """)
    strip_script = textwrap.dedent(f"""\
        #!/bin/sh
        set -e
        for last; do :; done
        grep -v '^{DEBUG_MARKER}' "$last" > "$last.strip-tmp"
        cat "$last.strip-tmp" > "$last"
        rm -f "$last.strip-tmp"
    """)
    write_executable(tools / "cargo", cargo_script.encode("utf-8"))
    write_executable(tools / "strip", strip_script.encode("utf-8"))
    return tools


@pytest.fixture()
def cli_env(fake_tools_dir: Path) -> dict[str, str]:
    """
    Environment for running the CLI in a subprocess against the fake tools.

    Identity variables from the outer environment are dropped so a CI run
    of the test suite can't leak its own TARGET into the tests.
    """
    env = {
        key: value
        for key, value in os.environ.items()
        if key not in {"TARGET", "PROJECT_NAME", "RELEASE_TAG", "TRAVIS_TAG", "CARGO_TARGET_DIR",
                       "RELPACK_CARGO", "RELPACK_STRIP"}
    }
    env["PATH"] = f"{fake_tools_dir}{os.pathsep}{env.get('PATH', '')}"
    repo_root = str(Path(__file__).resolve().parent.parent)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [repo_root, env.get("PYTHONPATH")]))
    env["TARGET"] = "x86_64-unknown-linux-gnu"
    env["PROJECT_NAME"] = "demo"
    env["RELEASE_TAG"] = "v1.2.3"
    return env


@pytest.fixture()
def detach_file_handlers() -> Iterator[None]:
    """Remove log-file handlers a test attached to relpack loggers."""
    yield
    close_package_log_file()
    for name in list(logging.Logger.manager.loggerDict):
        if name != "relpack" and not name.startswith("relpack."):
            continue
        existing = logging.getLogger(name)
        for handler in [h for h in existing.handlers if isinstance(h, logging.FileHandler)]:
            existing.removeHandler(handler)
            handler.close()
