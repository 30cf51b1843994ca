"""Package selection."""

from wyvern.filters.scope import compile_patterns, match_scope
from wyvern.filters.selector import PackagePredicate, SelectionCriteria, build_predicate
from wyvern.filters.since import DiffProvider, changed_packages, get_changed_packages

__all__ = [
    "DiffProvider",
    "PackagePredicate",
    "SelectionCriteria",
    "build_predicate",
    "changed_packages",
    "compile_patterns",
    "get_changed_packages",
    "match_scope",
]
