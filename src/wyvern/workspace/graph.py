"""Dependency graph, cycle detection and release ordering."""

from __future__ import annotations

import heapq
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path

from wyvern.errors import CyclicDependencyError, NoPackagesError, WyvernError
from wyvern.reporter import Reporter
from wyvern.workspace.package import DependencySection, Package

_WHITE, _GREY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Directed graph of path dependencies between workspace packages.

    An edge ``a -> b`` means ``a`` depends on ``b``. Only path dependencies
    that resolve to a package of the graph become edges.

    Attributes:
        packages: Nodes by name.
    """

    def __init__(self, packages: Mapping[str, Package], *, include_dev: bool = True) -> None:
        self.packages = dict(packages)
        self._edges: dict[str, list[str]] = {}
        self._reverse: dict[str, list[str]] = {name: [] for name in self.packages}
        by_path = {pkg.path: name for name, pkg in self.packages.items()}

        for name, pkg in self.packages.items():
            targets: set[str] = set()
            for dep in pkg.path_dependencies:
                if not include_dev and dep.section is DependencySection.DEV:
                    continue
                target = by_path.get(dep.path) if dep.path is not None else None
                if target is None and dep.name in self.packages:
                    target = dep.name
                if target is not None:
                    targets.add(target)
            self._edges[name] = sorted(targets)
            for target in targets:
                self._reverse[target].append(name)

        for dependents in self._reverse.values():
            dependents.sort()

    def get_dependencies(self, name: str) -> list[Package]:
        """Direct path dependencies of a package."""
        return [self.packages[n] for n in self._edges.get(name, [])]

    def get_dependents(self, name: str) -> list[Package]:
        """Packages with a direct path dependency on ``name``."""
        return [self.packages[n] for n in self._reverse.get(name, [])]

    def get_transitive_dependents(self, name: str) -> list[Package]:
        """Every package that depends on ``name``, directly or not, sorted by name."""
        seen: set[str] = set()
        stack = list(self._reverse.get(name, []))
        while stack:
            current = stack.pop()
            if current in seen or current == name:
                continue
            seen.add(current)
            stack.extend(self._reverse.get(current, []))
        return [self.packages[n] for n in sorted(seen)]

    def _condensed(self, selected: set[str]) -> dict[str, dict[str, list[str]]]:
        """Edges between selected packages, walking through unselected ones.

        Returns, for each selected package, the selected packages it reaches
        and the unselected packages passed on the way.
        """
        condensed: dict[str, dict[str, list[str]]] = {}
        for start in sorted(selected):
            reached: dict[str, list[str]] = {}
            visited: set[str] = set()
            stack: list[tuple[str, list[str]]] = [(n, []) for n in reversed(self._edges[start])]
            while stack:
                node, via = stack.pop()
                if node in selected:
                    reached.setdefault(node, via)
                    continue
                if node in visited:
                    continue
                visited.add(node)
                for nxt in reversed(self._edges[node]):
                    stack.append((nxt, [*via, node]))
            condensed[start] = reached
        return condensed

    @staticmethod
    def _detect_cycle(
        nodes: Iterable[str],
        edges: Callable[[str], Iterable[str]],
    ) -> list[str] | None:
        """Depth-first coloring; returns the first cycle found, closed on its start."""
        color: dict[str, int] = {}

        for root in sorted(nodes):
            if color.get(root, _WHITE) != _WHITE:
                continue
            color[root] = _GREY
            path = [root]
            iters = [iter(edges(root))]
            while iters:
                node = next(iters[-1], None)
                if node is None:
                    color[path.pop()] = _BLACK
                    iters.pop()
                    continue
                state = color.get(node, _WHITE)
                if state == _GREY:
                    return [*path[path.index(node) :], node]
                if state == _WHITE:
                    color[node] = _GREY
                    path.append(node)
                    iters.append(iter(edges(node)))
        return None

    def find_cycle(self, candidates: Iterable[str]) -> list[str] | None:
        """Find a cycle that passes through at least one candidate.

        Edges are followed through packages that are not candidates, and the
        returned cycle lists every package on it, those included.
        """
        selected = set(candidates)
        condensed = self._condensed(selected)
        cycle = self._detect_cycle(selected, lambda n: sorted(condensed[n]))
        if cycle is None:
            return None

        expanded = [cycle[0]]
        for current, nxt in zip(cycle, cycle[1:]):
            expanded.extend(condensed[current][nxt])
            expanded.append(nxt)
        return expanded

    def release_order(
        self,
        predicate: Callable[[Package], bool],
        *,
        reporter: Reporter | None = None,
    ) -> list[Package]:
        """Selected packages, every dependency before its dependents.

        Packages rejected by the predicate are not returned but still
        connect the graph: if ``a`` depends on ``x`` which depends on ``b``,
        ``b`` comes before ``a`` even when ``x`` is not selected. Among
        packages with no ordering constraint the name decides.

        Raises:
            CyclicDependencyError: If a cycle passes through a selected package.
        """
        selected = {name for name, pkg in self.packages.items() if predicate(pkg)}

        cycle = self.find_cycle(selected)
        if cycle is not None:
            raise CyclicDependencyError(cycle)

        if reporter is not None:
            excluded = set(self.packages) - selected
            ignored = self._detect_cycle(
                excluded, lambda n: [t for t in self._edges[n] if t in excluded]
            )
            if ignored is not None:
                reporter.warn(
                    "Ignoring cycle among unselected packages: " + " -> ".join(ignored)
                )

        condensed = self._condensed(selected)
        remaining = {name: len(reached) for name, reached in condensed.items()}
        dependents: dict[str, list[str]] = {name: [] for name in selected}
        for name, reached in condensed.items():
            for dep in reached:
                dependents[dep].append(name)

        ready = [name for name, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        order: list[Package] = []
        while ready:
            name = heapq.heappop(ready)
            order.append(self.packages[name])
            for dependent in dependents[name]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, dependent)
        return order

    def to_dot(self, packages: Iterable[Package]) -> str:
        """Graphviz description of the given packages and the edges between them."""
        names = {p.name for p in packages}
        lines = ["digraph {"]
        for name in sorted(names):
            lines.append(f'    "{self.packages[name].id}";')
        for name in sorted(names):
            for dep in self._edges[name]:
                if dep in names:
                    lines.append(
                        f'    "{self.packages[name].id}" -> "{self.packages[dep].id}";'
                    )
        lines.append("}")
        return "\n".join(lines) + "\n"


def write_dot_graph(path: Path, packages: Iterable[Package], graph: DependencyGraph) -> None:
    """Write the graph description of ``packages`` to ``path``.

    Raises:
        WyvernError: If the file cannot be written.
    """
    try:
        path.write_text(graph.to_dot(packages), encoding="utf-8")
    except OSError as e:
        raise WyvernError(f"Failed to write dependency graph to {path}: {e}") from e


def ensure_not_empty(
    packages: Sequence[Package],
    *,
    fail: bool,
    reporter: Reporter,
) -> bool:
    """Handle an empty selection.

    Returns:
        True if there is something to do.

    Raises:
        NoPackagesError: If nothing was selected and that counts as a failure.
    """
    if packages:
        return True
    if fail:
        raise NoPackagesError()
    reporter.info("No packages selected. All good. Exiting.")
    return False
