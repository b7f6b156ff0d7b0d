"""
Layers provisioning check.

Checks the installations provisioned under a layers install root: unreferenced
modules of the reference installation, modules the layered installation
drops, banned modules, and (optionally) that default-config installations
boot.

Usage:
  python scripts/run_layers_check.py --config layers-check.json
  PROVCHECK_LAYERS_INSTALL_ROOT=target/layers python scripts/run_layers_check.py --variant wildfly
"""

from __future__ import annotations

import argparse
import json
import os
import sys

from provcheck.core.checks.reporting import to_human, to_json_dict
from provcheck.core.checks.runner import LayersCheckRunner
from provcheck.core.config.loader import load_check_config
from provcheck.core.error_reporter import ErrorReporter
from provcheck.core.errors import ProvcheckError
from provcheck.core.logger import setup_logging
from provcheck.core.ops_log import OpsLogger

CHECKS = ("all", "layers", "banned", "boot")


def main() -> int:
    ap = argparse.ArgumentParser(description="Verify provisioned server installations")
    ap.add_argument("--config", default="", help="JSON config file")
    ap.add_argument("--root", default="", help="layers install root (overrides config)")
    ap.add_argument("--default-configs-root", default="", help="default configs install root (overrides config)")
    ap.add_argument("--variant", default="", help="feature pack variant preset")
    ap.add_argument("--check", choices=CHECKS, default="all")
    ap.add_argument("--delete", action="store_true", help="delete installations after the run")
    ap.add_argument("--json", action="store_true", help="print the report as JSON")
    args = ap.parse_args()

    overrides = {}
    if args.root:
        overrides["layers_install_root"] = args.root
    if args.default_configs_root:
        overrides["default_configs_root"] = args.default_configs_root
    if args.variant:
        overrides["variant"] = args.variant
    if args.delete:
        overrides["delete_installations"] = True

    try:
        cfg = load_check_config(args.config or None, overrides=overrides)
    except ProvcheckError as e:
        print(f"{e.user_message} {e.context.get('error', '')}".strip(), file=sys.stderr)
        return 3

    logger = setup_logging(cfg.logs_dir)
    runner = LayersCheckRunner(
        ops=OpsLogger(path=os.path.join(cfg.logs_dir, "ops.jsonl")),
        logger=logger,
        error_reporter=ErrorReporter(path=os.path.join(cfg.logs_dir, "errors.jsonl"), logger=logger),
    )
    if args.check == "layers":
        report = runner.run_layers_test(cfg)
    elif args.check == "banned":
        report = runner.run_banned_check(cfg)
    elif args.check == "boot":
        report = runner.run_default_configs(cfg)
    else:
        report = runner.run(cfg)

    if args.json:
        print(json.dumps(to_json_dict(report), indent=2, sort_keys=True))
    else:
        print(to_human(report))
    return 0 if report.ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
