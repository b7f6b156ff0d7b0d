"""
Module discovery for one installation's modules directory.

Search order follows the module loader's own precedence: modules placed
directly under the modules directory, then the layers named in
`layers.conf`, then `base`, then add-ons. When the same module identifier
appears more than once, the first occurrence wins and the rest are skipped.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Tuple

from provcheck.core.errors import MalformedDescriptor
from provcheck.core.modules.descriptors import DESCRIPTOR_FILENAME, parse_module_descriptor
from provcheck.core.modules.models import ModuleDescriptor


@dataclass(frozen=True)
class ModuleRoot:
    layer: str
    path: str
    # the top-level modules dir also contains system/, which is walked separately
    skip_system: bool = False


def read_layers_conf(modules_root: str) -> List[str]:
    path = os.path.join(modules_root, "layers.conf")
    if not os.path.isfile(path):
        return []
    layers: List[str] = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedDescriptor("layers.conf could not be read.", path=path, error=str(e)[:200]) from e
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        if key.strip() != "layers":
            continue
        layers.extend(x.strip() for x in value.split(",") if x.strip())
    return layers


def module_roots(modules_root: str) -> List[ModuleRoot]:
    roots = [ModuleRoot(layer="root", path=modules_root, skip_system=True)]
    layers_dir = os.path.join(modules_root, "system", "layers")
    ordered = [x for x in read_layers_conf(modules_root) if x != "base"] + ["base"]
    for layer in ordered:
        roots.append(ModuleRoot(layer=layer, path=os.path.join(layers_dir, layer)))
    addons_dir = os.path.join(modules_root, "system", "add-ons")
    if os.path.isdir(addons_dir):
        for name in sorted(os.listdir(addons_dir)):
            if os.path.isdir(os.path.join(addons_dir, name)) and not name.startswith("."):
                roots.append(ModuleRoot(layer=f"add-ons/{name}", path=os.path.join(addons_dir, name)))
    return [r for r in roots if os.path.isdir(r.path)]


def _descriptor_paths(root: ModuleRoot) -> List[str]:
    out: List[str] = []
    for cur, dirs, files in os.walk(root.path):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        if root.skip_system and os.path.normpath(cur) == os.path.normpath(root.path):
            dirs[:] = [d for d in dirs if d != "system"]
        if DESCRIPTOR_FILENAME in files:
            out.append(os.path.join(cur, DESCRIPTOR_FILENAME))
    return out


class ModuleDiscovery:
    def __init__(self, *, modules_root: str, logger=None):
        self.modules_root = str(modules_root)
        self.logger = logger
        self.shadowed: List[Tuple[str, str]] = []

    def scan(self) -> Dict[str, ModuleDescriptor]:
        out: Dict[str, ModuleDescriptor] = {}
        self.shadowed = []
        if not os.path.isdir(self.modules_root):
            return out

        for root in module_roots(self.modules_root):
            for path in _descriptor_paths(root):
                desc = parse_module_descriptor(path, layer=root.layer)
                if desc is None:
                    continue
                if desc.identifier in out:
                    self.shadowed.append((desc.identifier, path))
                    if self.logger is not None:
                        self.logger.warning(
                            "Module %s in layer %s shadowed by layer %s",
                            desc.identifier,
                            root.layer,
                            out[desc.identifier].layer,
                        )
                    continue
                out[desc.identifier] = desc
        return out
