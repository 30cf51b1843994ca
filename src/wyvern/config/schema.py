"""Configuration schema for wyvern.yaml."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PreReleaseCascade(str, Enum):
    """Which package must carry a pre-release tag for cascading selection.

    ``SELF``: the candidate package is itself on a pre-release version.
    ``DEPENDENCIES``: the candidate has a direct path dependency that is on a
    pre-release version.
    """

    SELF = "self"
    DEPENDENCIES = "dependencies"


class SelectionConfig(BaseModel):
    """Defaults for package selection."""

    model_config = ConfigDict(extra="forbid")

    empty_package_is_failure: bool = Field(
        default=False,
        description="Fail instead of exiting cleanly when no package is selected",
    )
    pre_release_cascade: PreReleaseCascade = Field(
        default=PreReleaseCascade.SELF,
        description="Policy used by --include-pre-deps",
    )


class VerifyConfig(BaseModel):
    """Verification pipeline settings."""

    model_config = ConfigDict(extra="forbid")

    concurrency: int = Field(default=4, ge=1, le=64, description="Parallel verification cells")
    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Timeout in seconds for a single toolchain call",
    )
    target_dir: str | None = Field(
        default=None,
        description="Scratch and output directory, relative to the workspace root",
    )
    isolate_cells: bool = Field(
        default=True,
        description="Give every verification cell its own output directory",
    )
    fingerprint_exclude: list[str] = Field(
        default_factory=lambda: ["target", "Cargo.lock", ".cargo-ok"],
        description="Top level names that build steps may create or modify",
    )


class PublishConfig(BaseModel):
    """Registry publishing settings."""

    model_config = ConfigDict(extra="forbid")

    registry: str | None = Field(default=None, description="Alternative registry name")
    token_env: str = Field(
        default="CARGO_REGISTRY_TOKEN",
        description="Environment variable holding the registry token",
    )
    credentials_file: str | None = Field(
        default=None,
        description="Credential store, defaults to $CARGO_HOME/credentials.toml",
    )
    rate_limit_threshold: int = Field(
        default=30,
        ge=0,
        description="Batches larger than this are published with a delay",
    )
    rate_limit_delay: float = Field(
        default=21.0,
        ge=0,
        description="Seconds to wait before each publish past the first",
    )
    owner: str | None = Field(default=None, description="Owner added after publishing")


class ToolchainConfig(BaseModel):
    """External toolchain settings."""

    model_config = ConfigDict(extra="forbid")

    cargo: str = Field(default="cargo", description="Cargo executable")

    @field_validator("cargo")
    @classmethod
    def validate_cargo(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("cargo executable must not be empty")
        return v


class WyvernConfig(BaseModel):
    """Root configuration model for wyvern.yaml."""

    model_config = ConfigDict(extra="forbid")

    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    verify: VerifyConfig = Field(default_factory=VerifyConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for toolchain calls",
    )
