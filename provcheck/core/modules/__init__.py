"""
Module graph model + reachability scanning.

Installations are read from disk (module.xml descriptors and the server
configuration) into a ModuleGraph; the scanner walks it from the root module
and the active extensions.
"""

from provcheck.core.modules.graph import ModuleGraph
from provcheck.core.modules.installation import Installation, list_installations, load_installation
from provcheck.core.modules.scanner import ScanResult, reachable_from, scan

__all__ = [
    "Installation",
    "ModuleGraph",
    "ScanResult",
    "list_installations",
    "load_installation",
    "reachable_from",
    "scan",
]
