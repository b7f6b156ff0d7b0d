from __future__ import annotations

from typing import List

from provcheck.core.checks.models import CheckResult, CheckStatus, OverallStatus, PhaseResult


def phase_status(checks: List[CheckResult]) -> CheckStatus:
    if any(c.status == CheckStatus.FAILED for c in checks):
        return CheckStatus.FAILED
    if checks and all(c.status == CheckStatus.SKIPPED for c in checks):
        return CheckStatus.SKIPPED
    return CheckStatus.OK


def decide(phases: List[PhaseResult]) -> OverallStatus:
    # any FAILED phase fails the run; skipped phases do not
    for ph in phases:
        if ph.status == CheckStatus.FAILED:
            return OverallStatus.FAILED
    return OverallStatus.OK
