# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for relpack.

Each config section gets its own frozen pydantic model. Frozen means once the
loader builds it, nobody can mutate it halfway through a run; the identity
of a release is fixed for the whole pipeline.

The models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _check_path_component(value: str, field_name: str) -> str:
    """
    Make sure an identity value can be used verbatim inside a file name.

    Project name, tag and target all end up as one path segment (both in
    the cargo output path and in the artifact name), so separators and
    dot-segments would let a value point somewhere else entirely.
    """
    if not value:
        raise ValueError(f"{field_name} must not be empty")
    if value != value.strip():
        raise ValueError(f"{field_name} must not have leading or trailing whitespace")
    if value in {".", ".."}:
        raise ValueError(f"{field_name} must not be '.' or '..'")
    if "/" in value or "\\" in value or "\x00" in value:
        raise ValueError(f"{field_name} must not contain path separators: {value!r}")
    return value


class GlobalConfig(BaseModel):
    """Cross-cutting settings: observability only, for now."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output",
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_VALID_LOG_LEVELS)}, got {value!r}")
        return upper


class ReleaseIdentity(BaseModel):
    """
    The three values that name a release artifact.

    These come from the CI job (TARGET, PROJECT_NAME, RELEASE_TAG) and
    together they determine both where the build output lives and what the
    artifact is called. Two runs with the same identity write the same file;
    two runs that differ only in target never do.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    project_name: str = Field(description="Name of the program being released (cargo binary name)")
    release_tag: str = Field(description="Version or tag the release is published under")
    target: str = Field(description="Target triple, e.g. x86_64-unknown-linux-gnu")

    @field_validator("project_name", "release_tag", "target")
    @classmethod
    def _single_path_component(cls, value: str, info: ValidationInfo) -> str:
        return _check_path_component(value, info.field_name)


class ToolchainConfig(BaseModel):
    """
    How to reach the external tools and where the toolchain puts its output.

    The defaults describe a stock cargo setup: `cargo build --target <T>
    --release` writes to target/<T>/release/<name>.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    cargo: str = Field(default="cargo", min_length=1, description="Build program to invoke")
    strip: str = Field(default="strip", min_length=1, description="Symbol stripping program")
    target_dir: str = Field(
        default="target",
        min_length=1,
        description="Build output root, relative to the project directory",
    )
    release_dir: str = Field(
        default="release",
        min_length=1,
        description="Name of the release-mode segment under target/<triple>/",
    )
    build_args: list[str] = Field(
        default_factory=list,
        description="Extra arguments appended to the build command",
    )
    strip_args: list[str] = Field(
        default_factory=list,
        description="Extra arguments passed to strip before the file path",
    )


class RelpackConfig(BaseModel):
    """
    Top-level config container, built once at process start.

    `release` is required: a run without a full identity is a configuration
    error. The other sections fall back to their defaults.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global", default_factory=GlobalConfig)
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    release: ReleaseIdentity
