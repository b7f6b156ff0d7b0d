from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, FrozenSet, Iterable, List, Set

from provcheck.core.errors import UnknownRoot
from provcheck.core.modules.graph import ModuleGraph


@dataclass(frozen=True)
class ScanResult:
    roots: FrozenSet[str]
    reachable: FrozenSet[str]
    # required dependency targets with no descriptor -> modules that declared them
    unresolved: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.unresolved


def scan(graph: ModuleGraph, roots: Iterable[str], *, follow_optional: bool = True) -> ScanResult:
    """
    Breadth-first walk of the dependency edges starting at every root.

    Every root must be a node of the graph. Optional edges to modules that
    are not provisioned are skipped; required edges to them are collected
    in `unresolved`.
    """
    root_set = frozenset(roots)
    missing_roots = sorted(r for r in root_set if r not in graph)
    if missing_roots:
        raise UnknownRoot(
            f"Scan root(s) not found in the module graph: {', '.join(missing_roots)}.",
            roots=missing_roots,
        )

    visited: Set[str] = set(root_set)
    unresolved: Dict[str, Set[str]] = {}
    queue: Deque[str] = deque(sorted(root_set))
    while queue:
        current = queue.popleft()
        required = graph.required_dependencies_of(current)
        for target in sorted(graph.dependencies_of(current)):
            if target not in required and not follow_optional:
                continue
            if target not in graph:
                if target in required:
                    unresolved.setdefault(target, set()).add(current)
                continue
            if target in visited:
                continue
            visited.add(target)
            queue.append(target)

    return ScanResult(
        roots=root_set,
        reachable=frozenset(visited),
        unresolved={k: sorted(v) for k, v in sorted(unresolved.items())},
    )


def reachable_from(graph: ModuleGraph, roots: Iterable[str], *, follow_optional: bool = True) -> FrozenSet[str]:
    return scan(graph, roots, follow_optional=follow_optional).reachable
