from __future__ import annotations

import argparse
import json

from provcheck.core.config.loader import load_check_config


def main() -> None:
    ap = argparse.ArgumentParser(description="Print the effective layers check configuration")
    ap.add_argument("--config", default="")
    ap.add_argument("--expectations", action="store_true", help="also print the composed expectation sets")
    args = ap.parse_args()
    cfg = load_check_config(args.config or None)
    out = cfg.model_dump()
    if args.expectations:
        exp = cfg.expectations()
        out["_composed"] = {
            "sources": list(exp.sources),
            "expected_unreferenced": sorted(exp.expected_unreferenced),
            "expected_unused_in_all_layers": sorted(exp.expected_unused_in_all_layers),
        }
    print(json.dumps(out, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
