"""
Provisioning diff engine.

Both checks compare an actual module set against a caller-supplied
expectation with exact set equality. A mismatch is split into
`missing_from_actual` (the expectation is stale and should be dropped from
configuration) and `unexpected_in_actual` (provisioning regressed).
"""

from __future__ import annotations

from typing import Any, FrozenSet, Iterable

from pydantic import BaseModel, ConfigDict, Field

from provcheck.core.errors import BrokenInstallation, DiffMismatch
from provcheck.core.modules.installation import Installation
from provcheck.core.modules.scanner import scan

CHECK_UNREFERENCED = "unreferenced"
CHECK_UNUSED_IN_LAYERS = "unused_in_all_layers"


class DiffResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    check_id: str
    subject: str = ""
    expected: FrozenSet[str] = Field(default_factory=frozenset)
    actual: FrozenSet[str] = Field(default_factory=frozenset)
    missing_from_actual: FrozenSet[str] = Field(default_factory=frozenset)
    unexpected_in_actual: FrozenSet[str] = Field(default_factory=frozenset)
    diff_size: int = 0
    passed: bool = True

    def summary(self) -> str:
        if self.passed:
            return f"{self.check_id}({self.subject}): {len(self.actual)} module(s), all expected."
        return (
            f"{self.check_id}({self.subject}): {self.diff_size} difference(s); "
            f"unexpected={sorted(self.unexpected_in_actual)} "
            f"stale={sorted(self.missing_from_actual)}"
        )

    def details(self) -> dict[str, Any]:
        return {
            "missing_from_actual": sorted(self.missing_from_actual),
            "unexpected_in_actual": sorted(self.unexpected_in_actual),
            "diff_size": self.diff_size,
        }

    def to_error(self) -> DiffMismatch:
        return DiffMismatch(self.summary(), check_id=self.check_id, subject=self.subject, **self.details())

    def raise_for_mismatch(self) -> None:
        if not self.passed:
            raise self.to_error()


def compare_sets(check_id: str, expected: Iterable[str], actual: Iterable[str], *, subject: str = "") -> DiffResult:
    exp = frozenset(expected)
    act = frozenset(actual)
    missing = exp - act
    unexpected = act - exp
    return DiffResult(
        check_id=check_id,
        subject=subject,
        expected=exp,
        actual=act,
        missing_from_actual=missing,
        unexpected_in_actual=unexpected,
        diff_size=len(missing) + len(unexpected),
        passed=not missing and not unexpected,
    )


def assert_resolved(installation: Installation, *, follow_optional: bool = True) -> FrozenSet[str]:
    """
    Scan an installation and fail if a required dependency reachable from
    its roots has no descriptor. Returns the reachable set.
    """
    result = scan(installation.graph, installation.scan_roots, follow_optional=follow_optional)
    if not result.ok:
        raise BrokenInstallation(
            f"{installation.name}: {len(result.unresolved)} required module(s) not provisioned.",
            installation=installation.name,
            unresolved=result.unresolved,
        )
    return result.reachable


def unreferenced_diff(installation: Installation, reachable: Iterable[str], expected_unreferenced: Iterable[str]) -> DiffResult:
    """Diff for an installation whose reachable set is already known."""
    extra = installation.provisioned - frozenset(reachable)
    return compare_sets(CHECK_UNREFERENCED, expected_unreferenced, extra, subject=installation.name)


def check_unreferenced(installation: Installation, expected_unreferenced: Iterable[str], *, follow_optional: bool = True) -> DiffResult:
    reachable = assert_resolved(installation, follow_optional=follow_optional)
    return unreferenced_diff(installation, reachable, expected_unreferenced)


def check_unused_in_layers(reference: Installation, layered: Installation, expected_unused: Iterable[str]) -> DiffResult:
    unused = reference.provisioned - layered.provisioned
    return compare_sets(CHECK_UNUSED_IN_LAYERS, expected_unused, unused, subject=f"{reference.name}-{layered.name}")
