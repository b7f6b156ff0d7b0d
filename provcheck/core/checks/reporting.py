from __future__ import annotations

from typing import Any, Dict

from provcheck.core.checks.models import CheckStatus, LayersCheckReport

_MAX_LISTED = 25


def to_human(report: LayersCheckReport) -> str:
    lines = []
    lines.append(f"Layers check: {report.overall_status.value} ({len(report.installations)} installation(s))")
    for ph in report.phases:
        lines.append(f"- Phase {ph.phase_id}: {ph.name}: {ph.status.value}")
        for ck in ph.checks:
            lines.append(f"  - {ck.check_id}: {ck.status.value} - {ck.message}")
            for key in ("unexpected_in_actual", "missing_from_actual"):
                items = ck.details.get(key) or []
                if ck.status == CheckStatus.FAILED and items:
                    shown = ", ".join(items[:_MAX_LISTED])
                    more = f" (+{len(items) - _MAX_LISTED} more)" if len(items) > _MAX_LISTED else ""
                    lines.append(f"    {key}: {shown}{more}")
            if ck.remediation and ck.status == CheckStatus.FAILED:
                lines.append(f"    remediation: {ck.remediation}")
    if report.failures:
        lines.append("Failures:")
        for f in report.failures:
            lines.append(f"- {f}")
    if report.remediation_steps:
        lines.append("Next steps:")
        for s in report.remediation_steps:
            lines.append(f"- {s}")
    return "\n".join(lines)


def to_json_dict(report: LayersCheckReport) -> Dict[str, Any]:
    return report.model_dump(mode="json")
