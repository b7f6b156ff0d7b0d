from __future__ import annotations

from typing import Any, FrozenSet, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_frozenset(v: Any) -> FrozenSet[str]:
    if v is None:
        return frozenset()
    if isinstance(v, str):
        return frozenset([v])
    return frozenset(str(x).strip() for x in v if str(x or "").strip())


class ExpectationFragment(BaseModel):
    """
    A named piece of expectation data, e.g. the entries common to every
    feature pack or the additions for one feature pack.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    unreferenced: FrozenSet[str] = Field(default_factory=frozenset)
    unused_in_all_layers: FrozenSet[str] = Field(default_factory=frozenset)

    @field_validator("unreferenced", "unused_in_all_layers", mode="before")
    @classmethod
    def _norm(cls, v: Any) -> FrozenSet[str]:
        return _as_frozenset(v)


class ExpectationSet(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    expected_unreferenced: FrozenSet[str] = Field(default_factory=frozenset)
    expected_unused_in_all_layers: FrozenSet[str] = Field(default_factory=frozenset)
    sources: tuple[str, ...] = ()

    @field_validator("expected_unreferenced", "expected_unused_in_all_layers", mode="before")
    @classmethod
    def _norm(cls, v: Any) -> FrozenSet[str]:
        return _as_frozenset(v)


def compose_expectations(*fragments: ExpectationFragment) -> ExpectationSet:
    unreferenced: set[str] = set()
    unused: set[str] = set()
    for frag in fragments:
        unreferenced |= frag.unreferenced
        unused |= frag.unused_in_all_layers
    return ExpectationSet(
        expected_unreferenced=frozenset(unreferenced),
        expected_unused_in_all_layers=frozenset(unused),
        sources=tuple(f.name for f in fragments),
    )


def fragment(name: str, *, unreferenced: Iterable[str] = (), unused_in_all_layers: Iterable[str] = ()) -> ExpectationFragment:
    return ExpectationFragment(name=name, unreferenced=list(unreferenced), unused_in_all_layers=list(unused_in_all_layers))
