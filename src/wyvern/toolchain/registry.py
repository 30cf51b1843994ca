"""Registry requests and credential lookup."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from wyvern.compat import tomllib
from wyvern.errors import ConfigError
from wyvern.workspace import Package

DEFAULT_TOKEN_ENV = "CARGO_REGISTRY_TOKEN"
ALREADY_OWNER = "is already an owner"


def publish_args(
    manifest_path: Path,
    target_dir: Path,
    *,
    dry_run: bool,
    registry: str | None = None,
) -> list[str]:
    args = [
        "publish",
        "--manifest-path",
        str(manifest_path),
        "--no-verify",
        "--allow-dirty",
        "--target-dir",
        str(target_dir),
    ]
    if dry_run:
        args.append("--dry-run")
    if registry:
        args += ["--registry", registry]
    return args


def owner_args(pkg: Package, owner: str, *, registry: str | None = None) -> list[str]:
    args = ["owner", "--add", owner, pkg.name]
    if registry:
        args += ["--registry", registry]
    return args


def token_env_var(registry: str | None) -> str:
    """Environment variable cargo reads the token of ``registry`` from."""
    if not registry:
        return DEFAULT_TOKEN_ENV
    return f"CARGO_REGISTRIES_{registry.upper().replace('-', '_')}_TOKEN"


def is_already_owner(output: str) -> bool:
    return ALREADY_OWNER in output


def default_credentials_file(environ: Mapping[str, str]) -> Path:
    cargo_home = environ.get("CARGO_HOME")
    base = Path(cargo_home) if cargo_home else Path.home() / ".cargo"
    return base / "credentials.toml"


def resolve_token(
    explicit: str | None,
    environ: Mapping[str, str],
    credentials_file: Path | None,
    env_var: str = DEFAULT_TOKEN_ENV,
) -> str | None:
    """Find the registry token.

    Sources are tried in order: the explicit value, the environment variable,
    then the ``[registry] token`` entry of the credentials file.

    Raises:
        ConfigError: If the credentials file exists but is not valid TOML.
    """
    if explicit:
        return explicit
    if environ.get(env_var):
        return environ[env_var]
    if credentials_file is None or not credentials_file.is_file():
        return None
    try:
        with credentials_file.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read credentials: {e}", path=credentials_file) from e
    token = data.get("registry", {}).get("token")
    return str(token) if token else None
