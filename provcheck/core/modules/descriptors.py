"""
Readers for the on-disk files of an installation.

Only two documents are read: each module's `module.xml` and the server
configuration file that lists the active extensions. Both are parsed with
ElementTree and namespaces are ignored, since every schema version of the
module and domain descriptors uses the same element names.
"""

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from typing import FrozenSet, List, Optional

from pydantic import ValidationError

from provcheck.core.errors import MalformedDescriptor
from provcheck.core.modules.models import DEFAULT_SLOT, ModuleDependency, ModuleDescriptor, module_identifier

DESCRIPTOR_FILENAME = "module.xml"


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _children(elem: ET.Element, name: str) -> List[ET.Element]:
    return [c for c in list(elem) if _local(c.tag) == name]


def _truthy(v: Optional[str]) -> bool:
    return str(v or "").strip().lower() in {"true", "1", "yes"}


def _parse_xml(path: str) -> ET.Element:
    try:
        return ET.parse(path).getroot()
    except ET.ParseError as e:
        raise MalformedDescriptor(f"Invalid XML in {os.path.basename(path)}.", path=path, error=str(e)[:200]) from e
    except OSError as e:
        raise MalformedDescriptor("Descriptor could not be read.", path=path, error=str(e)[:200]) from e


def parse_module_descriptor(path: str, *, layer: str = "base") -> Optional[ModuleDescriptor]:
    """
    Parse one module.xml. Returns None for `module-absent` descriptors, which
    declare that a module is intentionally not provided.
    """
    root = _parse_xml(path)
    kind = _local(root.tag)
    try:
        if kind == "module":
            return _parse_module(root, path=path, layer=layer)
        if kind == "module-alias":
            if not root.get("target-name"):
                raise MalformedDescriptor("module-alias without target-name.", path=path)
            target = module_identifier(str(root.get("target-name")), root.get("target-slot") or DEFAULT_SLOT)
            return ModuleDescriptor(
                name=root.get("name"),
                slot=root.get("slot") or DEFAULT_SLOT,
                alias_target=target,
                layer=layer,
                descriptor_path=path,
            )
        if kind == "module-absent":
            return None
    except ValidationError as e:
        raise MalformedDescriptor("Descriptor failed validation.", path=path, error=str(e)[:200]) from e
    raise MalformedDescriptor(f"Unexpected descriptor root element <{kind}>.", path=path)


def _parse_module(root: ET.Element, *, path: str, layer: str) -> ModuleDescriptor:
    private = False
    for props in _children(root, "properties"):
        for prop in _children(props, "property"):
            if prop.get("name") == "jboss.api" and str(prop.get("value") or "").strip().lower() == "private":
                private = True

    deps: List[ModuleDependency] = []
    for block in _children(root, "dependencies"):
        # <system> entries are JDK paths, not module edges.
        for dep in _children(block, "module"):
            deps.append(
                ModuleDependency(
                    name=dep.get("name"),
                    slot=dep.get("slot") or DEFAULT_SLOT,
                    optional=_truthy(dep.get("optional")),
                    export=_truthy(dep.get("export")),
                    services=str(dep.get("services") or "none"),
                )
            )

    return ModuleDescriptor(
        name=root.get("name"),
        slot=root.get("slot") or DEFAULT_SLOT,
        dependencies=deps,
        private=private,
        layer=layer,
        descriptor_path=path,
    )


def read_extensions(server_config_path: str) -> FrozenSet[str]:
    """Module names of the `<extension module="..."/>` entries of a server config."""
    if not os.path.isfile(server_config_path):
        return frozenset()
    root = _parse_xml(server_config_path)
    out = set()
    for block in _children(root, "extensions"):
        for ext in _children(block, "extension"):
            mod = str(ext.get("module") or "").strip()
            if not mod:
                raise MalformedDescriptor("Extension without module attribute.", path=server_config_path)
            out.add(mod)
    return frozenset(out)
