from __future__ import annotations

import os
from typing import Dict, Iterable, Optional, Sequence
from xml.sax.saxutils import quoteattr

ROOT_MODULE = "org.jboss.as.standalone"


def module_dir(modules_root: str, name: str, *, slot: str = "main", layer: Optional[str] = "base") -> str:
    parts = name.split(".")
    if layer is None:
        base = modules_root
    else:
        base = os.path.join(modules_root, "system", "layers", layer)
    return os.path.join(base, *parts, slot)


def _write(path: str, text: str) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def write_module_xml(
    modules_root: str,
    name: str,
    *,
    deps: Sequence[str] = (),
    optional: Sequence[str] = (),
    private: bool = False,
    slot: str = "main",
    layer: Optional[str] = "base",
) -> str:
    lines = ['<?xml version="1.0" encoding="UTF-8"?>']
    slot_attr = f" slot={quoteattr(slot)}" if slot != "main" else ""
    lines.append(f'<module name={quoteattr(name)}{slot_attr} xmlns="urn:jboss:module:1.9">')
    if private:
        lines.append("    <properties>")
        lines.append('        <property name="jboss.api" value="private"/>')
        lines.append("    </properties>")
    lines.append("    <resources/>")
    lines.append("    <dependencies>")
    lines.append('        <system export="true"><paths><path name="sun.misc"/></paths></system>')
    for d in deps:
        lines.append(f"        <module name={quoteattr(d)}/>")
    for d in optional:
        lines.append(f'        <module name={quoteattr(d)} optional="true"/>')
    lines.append("    </dependencies>")
    lines.append("</module>")
    return _write(os.path.join(module_dir(modules_root, name, slot=slot, layer=layer), "module.xml"), "\n".join(lines) + "\n")


def write_alias_xml(modules_root: str, name: str, target: str, *, layer: Optional[str] = "base") -> str:
    text = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<module-alias xmlns="urn:jboss:module:1.9" name={quoteattr(name)} target-name={quoteattr(target)}/>\n'
    )
    return _write(os.path.join(module_dir(modules_root, name, layer=layer), "module.xml"), text)


def write_raw_descriptor(modules_root: str, name: str, text: str, *, layer: Optional[str] = "base") -> str:
    return _write(os.path.join(module_dir(modules_root, name, layer=layer), "module.xml"), text)


def write_standalone_xml(inst_dir: str, extensions: Iterable[str]) -> str:
    lines = ['<?xml version="1.0" encoding="UTF-8"?>', '<server xmlns="urn:jboss:domain:20.0">', "    <extensions>"]
    for ext in extensions:
        lines.append(f"        <extension module={quoteattr(ext)}/>")
    lines.append("    </extensions>")
    lines.append("</server>")
    return _write(os.path.join(inst_dir, "standalone", "configuration", "standalone.xml"), "\n".join(lines) + "\n")


def make_installation(
    root: str,
    name: str,
    modules: Dict[str, Sequence[str]],
    *,
    extensions: Iterable[str] = (),
    optional: Optional[Dict[str, Sequence[str]]] = None,
    private: Iterable[str] = (),
) -> str:
    """
    Write an installation with one module.xml per entry of `modules`
    (name -> required dependencies) and a standalone.xml listing `extensions`.
    """
    inst_dir = os.path.join(str(root), name)
    modules_root = os.path.join(inst_dir, "modules")
    private_set = set(private)
    for mod, deps in modules.items():
        write_module_xml(modules_root, mod, deps=deps, optional=(optional or {}).get(mod, ()), private=mod in private_set)
    write_standalone_xml(inst_dir, extensions)
    return inst_dir
