from __future__ import annotations

from collections import defaultdict
from typing import Dict, FrozenSet, Iterable, Iterator, Set

from provcheck.core.errors import UnknownModule
from provcheck.core.modules.models import ModuleDescriptor


class ModuleGraph:
    """
    Directed dependency graph of one installation.

    Nodes are module identifiers that have a descriptor. An edge A -> B
    exists iff A declares a dependency on B (an alias has one edge to its
    target). Edge targets do not have to be nodes: a dependency on a module
    that is not provisioned is kept so the scanner can report it.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, ModuleDescriptor] = {}
        # target -> optional; a target declared twice is optional only if both declarations are
        self._edges: Dict[str, Dict[str, bool]] = {}
        self._reverse: Dict[str, Set[str]] = defaultdict(set)

    @classmethod
    def from_descriptors(cls, descriptors: Iterable[ModuleDescriptor]) -> "ModuleGraph":
        g = cls()
        for desc in descriptors:
            g.add_module(desc)
        return g

    def add_module(self, desc: ModuleDescriptor) -> None:
        name = desc.identifier
        self._nodes[name] = desc
        edges: Dict[str, bool] = {}
        if desc.alias_target is not None:
            edges[desc.alias_target] = False
        for dep in desc.dependencies:
            target = dep.identifier
            edges[target] = edges.get(target, True) and dep.optional
        self._edges[name] = edges
        for target in edges:
            self._reverse[target].add(name)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._nodes))

    def names(self) -> FrozenSet[str]:
        return frozenset(self._nodes)

    def descriptor(self, name: str) -> ModuleDescriptor:
        try:
            return self._nodes[name]
        except KeyError:
            raise UnknownModule(f"Module {name} is not part of the graph.", module=name) from None

    def dependencies_of(self, name: str) -> FrozenSet[str]:
        self.descriptor(name)
        return frozenset(self._edges[name])

    def required_dependencies_of(self, name: str) -> FrozenSet[str]:
        self.descriptor(name)
        return frozenset(t for t, optional in self._edges[name].items() if not optional)

    def optional_dependencies_of(self, name: str) -> FrozenSet[str]:
        self.descriptor(name)
        return frozenset(t for t, optional in self._edges[name].items() if optional)

    def is_optional_edge(self, source: str, target: str) -> bool:
        self.descriptor(source)
        return bool(self._edges[source].get(target, False))

    def dependents_of(self, name: str) -> FrozenSet[str]:
        """Modules declaring a dependency on `name`; works for names without a descriptor."""
        return frozenset(self._reverse.get(name, ()))

    def private_modules(self) -> FrozenSet[str]:
        return frozenset(n for n, d in self._nodes.items() if d.private)
