from __future__ import annotations

import itertools

import pytest

from provcheck.core.errors import UnknownRoot
from provcheck.core.modules.graph import ModuleGraph
from provcheck.core.modules.models import ModuleDependency, ModuleDescriptor
from provcheck.core.modules.scanner import reachable_from, scan


def _graph(edges: dict, optional: dict | None = None) -> ModuleGraph:
    descs = []
    for name, deps in edges.items():
        dl = [ModuleDependency(name=d) for d in deps]
        dl += [ModuleDependency(name=d, optional=True) for d in (optional or {}).get(name, ())]
        descs.append(ModuleDescriptor(name=name, dependencies=dl))
    return ModuleGraph.from_descriptors(descs)


def test_transitive_reachability():
    g = _graph({"root": ["a"], "a": ["b"], "b": [], "c": []})
    assert reachable_from(g, {"root"}) == frozenset({"root", "a", "b"})


def test_order_independent_and_idempotent():
    g = _graph({"r1": ["a"], "r2": ["b"], "r3": ["c"], "a": ["c"], "b": [], "c": [], "d": []})
    roots = ["r1", "r2", "r3"]
    first = reachable_from(g, roots)
    for perm in itertools.permutations(roots):
        assert reachable_from(g, list(perm)) == first
    assert reachable_from(g, roots) == first


def test_cycle_terminates_and_counts_once():
    g = _graph({"a": ["b"], "b": ["a"]})
    res = scan(g, ["a"])
    assert res.reachable == frozenset({"a", "b"})
    assert res.ok


def test_self_loop():
    g = _graph({"a": ["a"]})
    assert reachable_from(g, ["a"]) == frozenset({"a"})


def test_unknown_root_is_an_error():
    g = _graph({"a": []})
    with pytest.raises(UnknownRoot) as ei:
        reachable_from(g, ["a", "missing"])
    assert ei.value.context["roots"] == ["missing"]


def test_required_edge_to_absent_module_is_unresolved():
    g = _graph({"root": ["a", "ghost"], "a": ["ghost"]})
    res = scan(g, ["root"])
    assert not res.ok
    assert res.unresolved == {"ghost": ["a", "root"]}
    assert "ghost" not in res.reachable


def test_optional_edge_to_absent_module_is_skipped():
    g = _graph({"root": []}, optional={"root": ["ghost"]})
    res = scan(g, ["root"])
    assert res.ok
    assert res.reachable == frozenset({"root"})


def test_optional_edges_can_be_ignored():
    g = _graph({"root": [], "opt": []}, optional={"root": ["opt"]})
    assert reachable_from(g, ["root"]) == frozenset({"root", "opt"})
    assert reachable_from(g, ["root"], follow_optional=False) == frozenset({"root"})
