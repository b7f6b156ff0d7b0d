"""
Layers check runner.

Loads every installation under the configured roots, runs the provisioning
checks in phases and folds the results into one LayersCheckReport.
"""

from provcheck.core.checks.runner import LayersCheckRunner

__all__ = ["LayersCheckRunner"]
