from __future__ import annotations

import json
import os
import subprocess

import pytest

from provcheck.core.checks.models import CheckStatus
from provcheck.core.checks.phases import PHASE_BANNED, PHASE_BOOT, PHASE_LOAD, PHASE_UNREFERENCED, PHASE_UNUSED_IN_LAYERS
from provcheck.core.checks.reporting import to_human, to_json_dict
from provcheck.core.checks.runner import LayersCheckRunner
from provcheck.core.diff.expectations import ExpectationSet
from provcheck.core.error_reporter import ErrorReporter
from provcheck.core.execution.verifier import BootVerifier
from .helpers.installations import ROOT_MODULE, make_installation, write_raw_descriptor

REF = "test-standalone-reference"
LAYERED = "test-all-layers"

EXPECTED = ExpectationSet(expected_unreferenced=["B"], expected_unused_in_all_layers=["B"])


def _provision(root, *, extra_ref_modules=()):
    ref_modules = {ROOT_MODULE: ["A"], "A": [], "B": []}
    for m in extra_ref_modules:
        ref_modules[m] = []
    make_installation(root, REF, ref_modules)
    make_installation(root, LAYERED, {ROOT_MODULE: ["A"], "A": []})


def _runner(tmp_path, ops_logger):
    return LayersCheckRunner(ops=ops_logger, error_reporter=ErrorReporter(path=str(tmp_path / "logs" / "errors.jsonl")))


def test_passing_run(tmp_path, layers_root, ops_logger, check_config):
    _provision(layers_root)
    report = _runner(tmp_path, ops_logger).run(check_config, expectations=EXPECTED, trace_id="t-pass")

    assert report.ok, to_human(report)
    assert report.installations == [LAYERED, REF]
    assert report.phase(PHASE_LOAD).status == CheckStatus.OK
    assert report.phase(PHASE_UNREFERENCED).status == CheckStatus.OK
    assert report.phase(PHASE_UNUSED_IN_LAYERS).status == CheckStatus.OK
    assert report.phase(PHASE_BANNED).status == CheckStatus.SKIPPED
    assert report.phase(PHASE_BOOT).status == CheckStatus.SKIPPED
    assert report.failures == []

    saved = json.loads((tmp_path / "logs" / "layers_report.json").read_text(encoding="utf-8"))
    assert saved == json.loads(json.dumps(to_json_dict(report)))

    events = [e["event"] for e in ops_logger.tail(50)]
    assert events[0] == "layers.check.begin"
    assert events[-1] == "layers.check.complete"
    assert "installation.loaded" in events


def test_new_module_fails_both_checks(tmp_path, layers_root, ops_logger, check_config):
    _provision(layers_root, extra_ref_modules=["D"])
    report = _runner(tmp_path, ops_logger).run(check_config, expectations=EXPECTED, trace_id="t-fail")

    assert not report.ok
    unref = report.phase(PHASE_UNREFERENCED).failed()
    assert [c.check_id for c in unref] == ["unreferenced"]
    assert unref[0].details["unexpected_in_actual"] == ["D"]
    unused = report.phase(PHASE_UNUSED_IN_LAYERS).failed()
    assert unused[0].details["unexpected_in_actual"] == ["D"]

    text = to_human(report)
    assert "unexpected_in_actual: D" in text
    assert "FAILED" in text

    errors = ErrorReporter(path=str(tmp_path / "logs" / "errors.jsonl")).by_trace_id("t-fail")
    assert {e["error_code"] for e in errors} == {"diff_mismatch"}


def test_broken_installation_is_isolated(tmp_path, layers_root, ops_logger, check_config):
    _provision(layers_root)
    make_installation(layers_root, "broken", {ROOT_MODULE: ["gone"]})
    make_installation(layers_root, "garbage", {ROOT_MODULE: []})
    write_raw_descriptor(os.path.join(str(layers_root), "garbage", "modules"), "bad", "<module")

    report = _runner(tmp_path, ops_logger).run(check_config, expectations=EXPECTED)

    load = {c.check_id: c for c in report.phase(PHASE_LOAD).checks}
    assert load["load.garbage"].error_code == "malformed_descriptor"
    assert load["load.broken"].status == CheckStatus.OK
    resolved = {c.check_id: c for c in report.phase(PHASE_UNREFERENCED).checks}
    assert resolved["resolved.broken"].error_code == "broken_installation"
    assert resolved["resolved.broken"].details["unresolved"] == {"gone": [ROOT_MODULE]}
    assert resolved["unreferenced"].status == CheckStatus.OK
    assert report.phase(PHASE_UNUSED_IN_LAYERS).status == CheckStatus.OK


def test_banned_module_check(tmp_path, layers_root, ops_logger, check_config):
    make_installation(layers_root, REF, {ROOT_MODULE: [], "X": []})
    make_installation(layers_root, "other", {ROOT_MODULE: [], "X": []})
    cfg = check_config.model_copy(update={"banned_modules": {"X": [REF]}})

    report = _runner(tmp_path, ops_logger).run_banned_check(cfg)

    banned = report.phase(PHASE_BANNED)
    assert banned.status == CheckStatus.FAILED
    violations = banned.checks[0].details["violations"]
    assert [(v["installation"], v["module"]) for v in violations] == [("other", "X")]


def test_missing_reference_installation(tmp_path, layers_root, ops_logger, check_config):
    make_installation(layers_root, LAYERED, {ROOT_MODULE: []})
    report = _runner(tmp_path, ops_logger).run_layers_test(check_config, expectations=EXPECTED)
    assert not report.ok
    assert report.phase(PHASE_UNREFERENCED).failed()[0].error_code == "installation_not_found"
    assert report.phase(PHASE_UNUSED_IN_LAYERS).failed()[0].error_code == "installation_not_found"


def test_empty_root_fails(tmp_path, ops_logger, check_config):
    report = _runner(tmp_path, ops_logger).run(check_config, expectations=EXPECTED, write_report=False)
    assert not report.ok
    assert report.phase(PHASE_LOAD).checks[0].check_id == "load"
    assert not (tmp_path / "logs" / "layers_report.json").exists()


def test_cleanup_deletes_installations(tmp_path, layers_root, ops_logger, check_config):
    _provision(layers_root)
    cfg = check_config.model_copy(update={"delete_installations": True})
    report = _runner(tmp_path, ops_logger).run(cfg, expectations=EXPECTED)

    assert report.ok
    assert os.path.isdir(layers_root)
    assert os.listdir(layers_root) == []
    cleanup = [e for e in ops_logger.tail(50) if e["event"] == "layers.cleanup"]
    assert len(cleanup[0]["details"]["removed"]) == 2


def test_broken_reference_reported_once(tmp_path, layers_root, ops_logger, check_config):
    make_installation(layers_root, REF, {ROOT_MODULE: ["gone"], "B": []})
    make_installation(layers_root, LAYERED, {ROOT_MODULE: []})

    report = _runner(tmp_path, ops_logger).run(check_config, expectations=EXPECTED, trace_id="t-broken")

    checks = {c.check_id: c for c in report.phase(PHASE_UNREFERENCED).checks}
    assert checks[f"resolved.{REF}"].error_code == "broken_installation"
    assert checks["unreferenced"].status == CheckStatus.SKIPPED
    assert report.phase(PHASE_UNREFERENCED).status == CheckStatus.FAILED
    errors = ErrorReporter(path=str(tmp_path / "logs" / "errors.jsonl")).by_trace_id("t-broken")
    assert [e["error_code"] for e in errors].count("broken_installation") == 1


def test_unreadable_layers_conf_fails_only_its_installation(tmp_path, layers_root, ops_logger, check_config):
    _provision(layers_root)
    other = make_installation(layers_root, "other", {ROOT_MODULE: []})
    with open(os.path.join(other, "modules", "layers.conf"), "wb") as f:
        f.write(b"layers=\xff\xfe\n")

    report = _runner(tmp_path, ops_logger).run(check_config, expectations=EXPECTED)

    load = {c.check_id: c for c in report.phase(PHASE_LOAD).checks}
    assert load["load.other"].status == CheckStatus.FAILED
    assert load["load.other"].error_code == "malformed_descriptor"
    assert load[f"load.{REF}"].status == CheckStatus.OK
    assert report.phase(PHASE_UNREFERENCED).status == CheckStatus.OK
    assert (tmp_path / "logs" / "layers_report.json").exists()


class _ExplodingVerifier(BootVerifier):
    def verify_boots(self, installation_path: str):
        raise subprocess.TimeoutExpired(cmd="standalone.sh", timeout=1.0)


def test_cleanup_runs_when_a_phase_raises(tmp_path, layers_root, ops_logger, check_config):
    _provision(layers_root)
    defaults = tmp_path / "defaults"
    make_installation(defaults, "default", {ROOT_MODULE: []})
    cfg = check_config.model_copy(update={"delete_installations": True, "default_configs_root": str(defaults)})
    runner = LayersCheckRunner(ops=ops_logger, boot_verifier=_ExplodingVerifier())

    with pytest.raises(subprocess.TimeoutExpired):
        runner.run(cfg, expectations=EXPECTED)

    assert os.listdir(layers_root) == []
    assert os.listdir(defaults) == []
    events = [e["event"] for e in ops_logger.tail(50)]
    assert "layers.cleanup" in events
    assert "layers.check.complete" not in events
