from __future__ import annotations

import pytest

from provcheck.core.errors import UnknownModule
from provcheck.core.modules.graph import ModuleGraph
from provcheck.core.modules.models import ModuleDependency, ModuleDescriptor


def _mod(name: str, *deps: str, optional=(), private: bool = False) -> ModuleDescriptor:
    dl = [ModuleDependency(name=d) for d in deps] + [ModuleDependency(name=d, optional=True) for d in optional]
    return ModuleDescriptor(name=name, dependencies=dl, private=private)


def test_dependencies_of_returns_direct_edges():
    g = ModuleGraph.from_descriptors([_mod("root", "a", "b"), _mod("a", "c"), _mod("b"), _mod("c")])
    assert g.dependencies_of("root") == frozenset({"a", "b"})
    assert g.dependencies_of("a") == frozenset({"c"})


def test_leaf_has_no_dependencies():
    g = ModuleGraph.from_descriptors([_mod("leaf")])
    assert g.dependencies_of("leaf") == frozenset()


def test_unknown_module_raises():
    g = ModuleGraph.from_descriptors([_mod("a")])
    with pytest.raises(UnknownModule) as ei:
        g.dependencies_of("zzz")
    assert ei.value.code == "unknown_module"


def test_optional_and_required_edges():
    g = ModuleGraph.from_descriptors([_mod("a", "b", optional=["c"]), _mod("b"), _mod("c")])
    assert g.required_dependencies_of("a") == frozenset({"b"})
    assert g.optional_dependencies_of("a") == frozenset({"c"})
    assert g.is_optional_edge("a", "c")


def test_edge_declared_required_and_optional_is_required():
    desc = ModuleDescriptor(name="a", dependencies=[ModuleDependency(name="b", optional=True), ModuleDependency(name="b")])
    g = ModuleGraph.from_descriptors([desc, _mod("b")])
    assert g.required_dependencies_of("a") == frozenset({"b"})


def test_alias_is_an_edge_to_target():
    g = ModuleGraph.from_descriptors([ModuleDescriptor(name="old.api", alias_target="new.api"), _mod("new.api")])
    assert g.dependencies_of("old.api") == frozenset({"new.api"})


def test_dependents_include_missing_targets():
    g = ModuleGraph.from_descriptors([_mod("a", "ghost"), _mod("b", "ghost")])
    assert "ghost" not in g
    assert g.dependents_of("ghost") == frozenset({"a", "b"})


def test_private_modules_and_size():
    g = ModuleGraph.from_descriptors([_mod("a", private=True), _mod("b")])
    assert len(g) == 2
    assert g.private_modules() == frozenset({"a"})
    assert list(g) == ["a", "b"]
