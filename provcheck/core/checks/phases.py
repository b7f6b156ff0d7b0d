from __future__ import annotations

import os
from typing import Dict, FrozenSet, List, Optional, Tuple

from provcheck.core.banned.checker import BannedModulesConfig, check_banned
from provcheck.core.checks.decision import phase_status
from provcheck.core.checks.models import CheckResult, CheckStatus, PhaseResult
from provcheck.core.config.models import LayersCheckConfig
from provcheck.core.diff.engine import DiffResult, assert_resolved, check_unused_in_layers, unreferenced_diff
from provcheck.core.diff.expectations import ExpectationSet
from provcheck.core.error_reporter import ErrorReporter
from provcheck.core.errors import BannedModuleViolation, BootFailed, ProvcheckError, Severity
from provcheck.core.execution.verifier import BootVerifier
from provcheck.core.modules.installation import Installation, list_installations, load_installation

PHASE_LOAD = 0
PHASE_UNREFERENCED = 1
PHASE_UNUSED_IN_LAYERS = 2
PHASE_BANNED = 3
PHASE_BOOT = 4

_REMEDIATION = {
    "installation_not_found": "Provision the installation before running the check.",
    "malformed_descriptor": "Fix or regenerate the module descriptor named in the error.",
    "missing_root": "Check root_module in the configuration or the provisioning of the kernel modules.",
    "unknown_root": "An extension listed in the server configuration has no module; fix the configuration or provisioning.",
    "broken_installation": "Provision the missing modules or drop the dependency on them.",
    "banned_module_violation": "Remove the banned module from provisioning or add the installation to its exemptions.",
    "boot_timeout": "Inspect the server log; raise boot.timeout_seconds only if the server is genuinely slow.",
    "boot_failed": "Inspect the server log for startup errors.",
}


def _failure(check_id: str, err: ProvcheckError, *, reporter: Optional[ErrorReporter], trace_id: str, subsystem: str) -> CheckResult:
    if reporter is not None:
        reporter.write_error(err, trace_id=trace_id, subsystem=subsystem)
    return CheckResult(
        check_id=check_id,
        status=CheckStatus.FAILED,
        message=err.user_message,
        remediation=_REMEDIATION.get(err.code),
        severity=err.severity,
        error_code=err.code,
        details=err.to_dict().get("context") or {},
    )


def _diff_check(check_id: str, diff: DiffResult, *, reporter: Optional[ErrorReporter], trace_id: str) -> CheckResult:
    if diff.passed:
        return CheckResult(check_id=check_id, status=CheckStatus.OK, message=diff.summary(), details=diff.details())
    res = _failure(check_id, diff.to_error(), reporter=reporter, trace_id=trace_id, subsystem="diff")
    remediation = []
    if diff.unexpected_in_actual:
        remediation.append("Unexpected modules: fix provisioning or justify them in the expectation set.")
    if diff.missing_from_actual:
        remediation.append("Stale expectations: remove the listed modules from the expectation set.")
    return res.model_copy(update={"remediation": " ".join(remediation)})


def phase0_load_installations(
    *,
    root: str,
    cfg: LayersCheckConfig,
    reporter: Optional[ErrorReporter] = None,
    logger=None,
    trace_id: str = "layers",
) -> Tuple[PhaseResult, Dict[str, Installation]]:
    checks: List[CheckResult] = []
    loaded: Dict[str, Installation] = {}
    paths = list_installations(root)
    if not paths:
        checks.append(
            CheckResult(
                check_id="load",
                status=CheckStatus.FAILED,
                message=f"No installations found under {root or '<unset>'}.",
                remediation="Set layers_install_root to the directory holding the provisioned installations.",
                severity=Severity.CRITICAL,
                error_code="installation_not_found",
            )
        )
    for path in paths:
        name = os.path.basename(path)
        try:
            inst = load_installation(path, logger=logger, **cfg.load_options())
        except ProvcheckError as e:
            checks.append(_failure(f"load.{name}", e, reporter=reporter, trace_id=trace_id, subsystem="loader"))
            continue
        loaded[name] = inst
        checks.append(
            CheckResult(
                check_id=f"load.{name}",
                status=CheckStatus.OK,
                message=f"{len(inst.provisioned)} module(s), {len(inst.extensions)} extension(s).",
                details={"private_modules": len(inst.graph.private_modules())},
            )
        )
    return PhaseResult(phase_id=PHASE_LOAD, name="Installation Loading", status=phase_status(checks), checks=checks), loaded


def phase1_unreferenced(
    *,
    installations: Dict[str, Installation],
    cfg: LayersCheckConfig,
    expectations: ExpectationSet,
    reporter: Optional[ErrorReporter] = None,
    trace_id: str = "layers",
) -> PhaseResult:
    checks: List[CheckResult] = []
    resolved: Dict[str, FrozenSet[str]] = {}
    for name in sorted(installations):
        try:
            reachable = assert_resolved(installations[name], follow_optional=cfg.follow_optional)
        except ProvcheckError as e:
            checks.append(_failure(f"resolved.{name}", e, reporter=reporter, trace_id=trace_id, subsystem="scanner"))
            continue
        resolved[name] = reachable
        checks.append(CheckResult(check_id=f"resolved.{name}", status=CheckStatus.OK, message=f"{len(reachable)} reachable module(s), all provisioned."))

    reference = installations.get(cfg.reference_installation)
    if reference is None:
        checks.append(
            CheckResult(
                check_id="unreferenced",
                status=CheckStatus.FAILED,
                message=f"Reference installation {cfg.reference_installation} was not loaded.",
                remediation="Provision the reference installation or fix reference_installation.",
                severity=Severity.CRITICAL,
                error_code="installation_not_found",
            )
        )
    elif reference.name not in resolved:
        # already reported by resolved.<reference>
        checks.append(
            CheckResult(
                check_id="unreferenced",
                status=CheckStatus.SKIPPED,
                message=f"Reference installation {reference.name} is broken; see resolved.{reference.name}.",
            )
        )
    else:
        diff = unreferenced_diff(reference, resolved[reference.name], expectations.expected_unreferenced)
        checks.append(_diff_check("unreferenced", diff, reporter=reporter, trace_id=trace_id))
    return PhaseResult(phase_id=PHASE_UNREFERENCED, name="Unreferenced Modules", status=phase_status(checks), checks=checks)


def phase2_unused_in_layers(
    *,
    installations: Dict[str, Installation],
    cfg: LayersCheckConfig,
    expectations: ExpectationSet,
    reporter: Optional[ErrorReporter] = None,
    trace_id: str = "layers",
) -> PhaseResult:
    checks: List[CheckResult] = []
    missing = [n for n in (cfg.reference_installation, cfg.layered_installation) if n not in installations]
    if missing:
        checks.append(
            CheckResult(
                check_id="unused_in_all_layers",
                status=CheckStatus.FAILED,
                message=f"Installation(s) not loaded: {', '.join(missing)}.",
                remediation="Provision both the reference and the layered installation.",
                severity=Severity.CRITICAL,
                error_code="installation_not_found",
            )
        )
    else:
        diff = check_unused_in_layers(
            installations[cfg.reference_installation],
            installations[cfg.layered_installation],
            expectations.expected_unused_in_all_layers,
        )
        checks.append(_diff_check("unused_in_all_layers", diff, reporter=reporter, trace_id=trace_id))
    return PhaseResult(phase_id=PHASE_UNUSED_IN_LAYERS, name="Unused In All Layers", status=phase_status(checks), checks=checks)


def phase3_banned_modules(
    *,
    installations: List[Installation],
    banned: BannedModulesConfig,
    reporter: Optional[ErrorReporter] = None,
    trace_id: str = "layers",
) -> PhaseResult:
    checks: List[CheckResult] = []
    if not banned.banned:
        checks.append(CheckResult(check_id="banned", status=CheckStatus.SKIPPED, message="No banned modules configured."))
    else:
        violations = check_banned(installations, banned)
        if violations:
            checks.append(_failure("banned", BannedModuleViolation.from_violations(violations), reporter=reporter, trace_id=trace_id, subsystem="banned"))
        else:
            checks.append(
                CheckResult(
                    check_id="banned",
                    status=CheckStatus.OK,
                    message=f"{len(banned.banned)} banned module(s) absent from {len(installations)} installation(s).",
                )
            )
    return PhaseResult(phase_id=PHASE_BANNED, name="Banned Modules", status=phase_status(checks), checks=checks)


def phase4_default_config_boot(
    *,
    root: str,
    verifier: BootVerifier,
    reporter: Optional[ErrorReporter] = None,
    trace_id: str = "layers",
) -> PhaseResult:
    checks: List[CheckResult] = []
    if not root:
        checks.append(CheckResult(check_id="boot", status=CheckStatus.SKIPPED, message="default_configs_root not set."))
        return PhaseResult(phase_id=PHASE_BOOT, name="Default Config Boot", status=CheckStatus.SKIPPED, checks=checks)

    for path in list_installations(root):
        name = os.path.basename(path)
        check_id = f"boot.{name}"
        try:
            res = verifier.verify_boots(path)
        except ProvcheckError as e:
            checks.append(_failure(check_id, e, reporter=reporter, trace_id=trace_id, subsystem="boot"))
            continue
        except OSError as e:
            err = reporter.report_exception(e, trace_id=trace_id, subsystem="boot", context={"installation": name}) if reporter else BootFailed("Server launch failed.", error=str(e))
            checks.append(_failure(check_id, err, reporter=None, trace_id=trace_id, subsystem="boot"))
            continue
        if res.ok:
            checks.append(CheckResult(check_id=check_id, status=CheckStatus.OK, message=f"Started and stopped in {res.duration_seconds:.1f}s."))
        else:
            err = BootFailed(
                f"{name}: outcome={res.outcome}, clean_shutdown={res.clean_shutdown}.",
                installation=name,
                returncode=res.returncode,
                output_tail=res.output_tail[-10:],
            )
            checks.append(_failure(check_id, err, reporter=reporter, trace_id=trace_id, subsystem="boot"))
    if not checks:
        checks.append(CheckResult(check_id="boot", status=CheckStatus.SKIPPED, message=f"No installations under {root}."))
    return PhaseResult(phase_id=PHASE_BOOT, name="Default Config Boot", status=phase_status(checks), checks=checks)
