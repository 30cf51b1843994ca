"""Isolated verification of packages."""

from wyvern.verify.fingerprint import DEFAULT_EXCLUDE, changed_paths, fingerprint, snapshot
from wyvern.verify.pipeline import VerificationPipeline, VerifyContext, VerifyOutcome
from wyvern.verify.replace import ReplacementMap, inject_replacements

__all__ = [
    "DEFAULT_EXCLUDE",
    "ReplacementMap",
    "VerificationPipeline",
    "VerifyContext",
    "VerifyOutcome",
    "changed_paths",
    "fingerprint",
    "inject_replacements",
    "snapshot",
]
