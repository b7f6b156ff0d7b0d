from __future__ import annotations

import os
from typing import Dict, List, Optional, Sequence

from provcheck.core.banned.checker import BannedModulesConfig
from provcheck.core.checks.cleanup import delete_installations
from provcheck.core.checks.decision import decide
from provcheck.core.checks.models import CheckStatus, LayersCheckReport, PhaseResult
from provcheck.core.checks.phases import (
    phase0_load_installations,
    phase1_unreferenced,
    phase2_unused_in_layers,
    phase3_banned_modules,
    phase4_default_config_boot,
)
from provcheck.core.config.io import atomic_write_json
from provcheck.core.config.models import LayersCheckConfig
from provcheck.core.diff.expectations import ExpectationSet
from provcheck.core.error_reporter import ErrorReporter
from provcheck.core.execution.verifier import BootVerifier
from provcheck.core.modules.installation import Installation
from provcheck.core.ops_log import OpsLogger


class LayersCheckRunner:
    """
    Runs the provisioning checks over the installations named by a
    LayersCheckConfig. Reportable failures are collected into one report;
    a fatal error only aborts the installation it belongs to.
    """

    def __init__(self, *, ops: OpsLogger, logger=None, error_reporter: Optional[ErrorReporter] = None, boot_verifier: Optional[BootVerifier] = None):
        self.ops = ops
        self.logger = logger
        self.error_reporter = error_reporter
        self.boot_verifier = boot_verifier

    def _verifier(self, cfg: LayersCheckConfig) -> BootVerifier:
        return self.boot_verifier or BootVerifier(cfg=cfg.boot, logger=self.logger)

    def _report(self, phases: List[PhaseResult], *, installations: Sequence[str], trace_id: str) -> LayersCheckReport:
        failures: List[str] = []
        remediation: List[str] = []
        for ph in phases:
            for ck in ph.checks:
                if ck.status != CheckStatus.FAILED:
                    continue
                failures.append(f"{ph.name}:{ck.check_id}: {ck.message}")
                if ck.remediation and ck.remediation not in remediation:
                    remediation.append(ck.remediation)
        return LayersCheckReport(
            overall_status=decide(phases),
            phases=phases,
            failures=failures,
            remediation_steps=remediation,
            installations=sorted(installations),
            trace_id=trace_id,
        )

    def _load(self, cfg: LayersCheckConfig, trace_id: str) -> tuple[PhaseResult, Dict[str, Installation]]:
        ph0, loaded = phase0_load_installations(
            root=cfg.layers_install_root,
            cfg=cfg,
            reporter=self.error_reporter,
            logger=self.logger,
            trace_id=trace_id,
        )
        for name, inst in sorted(loaded.items()):
            self.ops.log(
                trace_id=trace_id,
                event="installation.loaded",
                outcome="ok",
                details={"installation": name, "modules": len(inst.provisioned), "extensions": inst.extensions},
            )
        return ph0, loaded

    def _log_phase(self, ph: PhaseResult, trace_id: str) -> None:
        self.ops.log(
            trace_id=trace_id,
            event=f"check.phase{ph.phase_id}",
            outcome=ph.status.value,
            details={"name": ph.name, "failed": [c.check_id for c in ph.failed()]},
        )
        if self.logger is not None:
            if ph.status == CheckStatus.FAILED:
                self.logger.error("%s: FAILED (%s)", ph.name, ", ".join(c.check_id for c in ph.failed()))
            else:
                self.logger.info("%s: %s", ph.name, ph.status.value)

    # ---------- individual checks ----------
    def run_layers_test(self, cfg: LayersCheckConfig, *, expectations: Optional[ExpectationSet] = None, trace_id: str = "layers") -> LayersCheckReport:
        exp = expectations if expectations is not None else cfg.expectations()
        ph0, loaded = self._load(cfg, trace_id)
        phases = [
            ph0,
            phase1_unreferenced(installations=loaded, cfg=cfg, expectations=exp, reporter=self.error_reporter, trace_id=trace_id),
            phase2_unused_in_layers(installations=loaded, cfg=cfg, expectations=exp, reporter=self.error_reporter, trace_id=trace_id),
        ]
        for ph in phases:
            self._log_phase(ph, trace_id)
        return self._report(phases, installations=list(loaded), trace_id=trace_id)

    def run_banned_check(self, cfg: LayersCheckConfig, *, banned: Optional[BannedModulesConfig] = None, trace_id: str = "layers") -> LayersCheckReport:
        ph0, loaded = self._load(cfg, trace_id)
        ph3 = phase3_banned_modules(
            installations=[loaded[n] for n in sorted(loaded)],
            banned=banned if banned is not None else cfg.banned(),
            reporter=self.error_reporter,
            trace_id=trace_id,
        )
        for ph in (ph0, ph3):
            self._log_phase(ph, trace_id)
        return self._report([ph0, ph3], installations=list(loaded), trace_id=trace_id)

    def run_default_configs(self, cfg: LayersCheckConfig, *, trace_id: str = "layers") -> LayersCheckReport:
        ph4 = phase4_default_config_boot(root=cfg.default_configs_root, verifier=self._verifier(cfg), reporter=self.error_reporter, trace_id=trace_id)
        self._log_phase(ph4, trace_id)
        return self._report([ph4], installations=[], trace_id=trace_id)

    # ---------- full run ----------
    def run(
        self,
        cfg: LayersCheckConfig,
        *,
        expectations: Optional[ExpectationSet] = None,
        banned: Optional[BannedModulesConfig] = None,
        trace_id: str = "layers",
        write_report: bool = True,
    ) -> LayersCheckReport:
        exp = expectations if expectations is not None else cfg.expectations()
        self.ops.log(
            trace_id=trace_id,
            event="layers.check.begin",
            outcome="start",
            details={"root": cfg.layers_install_root, "default_configs_root": cfg.default_configs_root, "expectation_sources": list(exp.sources)},
        )

        try:
            ph0, loaded = self._load(cfg, trace_id)
            phases = [
                ph0,
                phase1_unreferenced(installations=loaded, cfg=cfg, expectations=exp, reporter=self.error_reporter, trace_id=trace_id),
                phase2_unused_in_layers(installations=loaded, cfg=cfg, expectations=exp, reporter=self.error_reporter, trace_id=trace_id),
                phase3_banned_modules(
                    installations=[loaded[n] for n in sorted(loaded)],
                    banned=banned if banned is not None else cfg.banned(),
                    reporter=self.error_reporter,
                    trace_id=trace_id,
                ),
                phase4_default_config_boot(root=cfg.default_configs_root, verifier=self._verifier(cfg), reporter=self.error_reporter, trace_id=trace_id),
            ]
            for ph in phases:
                self._log_phase(ph, trace_id)

            report = self._report(phases, installations=list(loaded), trace_id=trace_id)
            if write_report:
                atomic_write_json(os.path.join(cfg.logs_dir, "layers_report.json"), report.model_dump(mode="json"))

            self.ops.log(trace_id=trace_id, event="layers.check.complete", outcome=report.overall_status.value, details={"failures": len(report.failures)})
        finally:
            # installations are removed even when a phase raised
            if cfg.delete_installations:
                removed = delete_installations([cfg.layers_install_root, cfg.default_configs_root], logger=self.logger)
                self.ops.log(trace_id=trace_id, event="layers.cleanup", outcome="ok", details={"removed": removed})
        return report
