"""Adapters for the cargo toolchain and the package registry."""

from wyvern.toolchain.client import CargoClient, Registry, Toolchain
from wyvern.toolchain.compile import CompileMode, compile_args
from wyvern.toolchain.package import archive_path, unpack_archive
from wyvern.toolchain.registry import (
    DEFAULT_TOKEN_ENV,
    default_credentials_file,
    is_already_owner,
    resolve_token,
    token_env_var,
)

__all__ = [
    "DEFAULT_TOKEN_ENV",
    "CargoClient",
    "CompileMode",
    "Registry",
    "Toolchain",
    "archive_path",
    "compile_args",
    "default_credentials_file",
    "is_already_owner",
    "resolve_token",
    "token_env_var",
    "unpack_archive",
]
