# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for relpack.

One command, no subcommands. The release identity comes from the
environment the CI job sets up; the options only tune where things live and
how much of the pipeline runs.

Usage:
    TARGET=x86_64-unknown-linux-gnu PROJECT_NAME=demo RELEASE_TAG=v1.2.3 relpack
    relpack --skip-build --workdir dist
    relpack --config relpack.yaml --dry-run
"""

import argparse
import sys
from typing import Optional, Sequence

from relpack.cli.commands import handle_release
from relpack.cli.exit_codes import USER_ERROR


class _ReleaseArgumentParser(argparse.ArgumentParser):
    """Bad usage exits with USER_ERROR instead of argparse's default 2 (CONFIG_ERROR here)."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(USER_ERROR, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ReleaseArgumentParser(
        prog="relpack",
        description=(
            "Build a release binary for one target and package it as "
            "<PROJECT_NAME>-<RELEASE_TAG>-<TARGET>, stripped. Reads TARGET, "
            "PROJECT_NAME and RELEASE_TAG (or TRAVIS_TAG) from the environment."
        ),
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to an optional YAML configuration file.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level (default: from config, else INFO).",
    )
    parser.add_argument(
        "--workdir",
        type=str,
        default=None,
        help="Directory the artifact is written to (default: current directory).",
    )
    parser.add_argument(
        "--project-dir",
        type=str,
        default=None,
        dest="project_dir",
        help="Directory the build runs in (default: current directory).",
    )
    parser.add_argument(
        "--skip-build",
        action="store_true",
        default=False,
        dest="skip_build",
        help="Package the existing build output without rebuilding.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Resolve and report paths without building, copying or stripping.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    Parses the command line, runs the release handler and exits with its
    return code. Bad usage exits with USER_ERROR.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    sys.exit(handle_release(args))


if __name__ == "__main__":
    main()
