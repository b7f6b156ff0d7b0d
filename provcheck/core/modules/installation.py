from __future__ import annotations

import os
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional

from provcheck.core.errors import InstallationNotFound, MissingRoot
from provcheck.core.modules.descriptors import read_extensions
from provcheck.core.modules.discovery import ModuleDiscovery
from provcheck.core.modules.graph import ModuleGraph

DEFAULT_ROOT_MODULE = "org.jboss.as.standalone"
DEFAULT_SERVER_CONFIG = os.path.join("standalone", "configuration", "standalone.xml")
DEFAULT_MODULES_DIR = "modules"


@dataclass(frozen=True)
class Installation:
    name: str
    path: str
    parent: str
    root_module: str
    extensions: FrozenSet[str]
    graph: ModuleGraph

    @property
    def provisioned(self) -> FrozenSet[str]:
        return self.graph.names()

    @property
    def scan_roots(self) -> FrozenSet[str]:
        return frozenset({self.root_module}) | self.extensions


def list_installations(root: str) -> List[str]:
    """Installation directories directly under `root`, sorted by name."""
    if not root or not os.path.isdir(root):
        return []
    out = []
    for name in sorted(os.listdir(root)):
        if name.startswith("."):
            continue
        p = os.path.join(root, name)
        if os.path.isdir(p):
            out.append(p)
    return out


def load_installation(
    path: str,
    *,
    root_module: str = DEFAULT_ROOT_MODULE,
    server_config: str = DEFAULT_SERVER_CONFIG,
    modules_dir: str = DEFAULT_MODULES_DIR,
    extensions: Optional[Iterable[str]] = None,
    logger=None,
) -> Installation:
    path = os.path.abspath(path)
    if not os.path.isdir(path):
        raise InstallationNotFound(f"No installation at {path}.", path=path)

    discovery = ModuleDiscovery(modules_root=os.path.join(path, modules_dir), logger=logger)
    graph = ModuleGraph.from_descriptors(discovery.scan().values())
    if root_module not in graph:
        raise MissingRoot(f"Root module {root_module} not found in {os.path.basename(path)}.", path=path, root_module=root_module)

    if extensions is None:
        exts = read_extensions(os.path.join(path, server_config))
    else:
        exts = frozenset(extensions)

    inst = Installation(
        name=os.path.basename(path),
        path=path,
        parent=os.path.dirname(path),
        root_module=root_module,
        extensions=exts,
        graph=graph,
    )
    if logger is not None:
        logger.info("Loaded installation %s: %d modules, %d extensions", inst.name, len(graph), len(exts))
    return inst
