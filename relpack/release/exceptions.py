# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Failures of the build → copy → strip sequence.

None of these are retried. Each one ends the run, and the CLI turns it into
a nonzero exit code so the CI job is marked failed and nothing is uploaded.
"""

from typing import Optional


class PackagingError(Exception):
    """Base for every failure after configuration succeeded."""


class BuildFailure(PackagingError):
    """The toolchain exited nonzero or could not be started."""

    def __init__(self, message: str, exit_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class MissingArtifactError(PackagingError):
    """
    The built binary isn't where the toolchain's path convention says it
    should be, or it isn't an executable regular file. Either the build never
    ran or the expected layout is wrong.
    """


class CopyFailure(PackagingError):
    """The built binary could not be copied to the artifact path."""


class StripFailure(PackagingError):
    """Stripping failed, or left the artifact in a state we can't publish."""

    def __init__(self, message: str, exit_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code
