from provcheck.core.diff.engine import DiffResult, check_unreferenced, check_unused_in_layers, compare_sets, unreferenced_diff
from provcheck.core.diff.expectations import ExpectationFragment, ExpectationSet, compose_expectations

__all__ = [
    "DiffResult",
    "ExpectationFragment",
    "ExpectationSet",
    "check_unreferenced",
    "check_unused_in_layers",
    "compare_sets",
    "compose_expectations",
    "unreferenced_diff",
]
