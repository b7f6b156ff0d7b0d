"""
Module descriptor models.

A descriptor is the parsed form of one module.xml found in an installation.
Only the fields the module graph needs are kept: identity, declared
dependency edges, API visibility and alias target.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SLOT = "main"

_NAME_RE = re.compile(r"[a-zA-Z0-9_][a-zA-Z0-9._$+-]{0,255}")


def module_identifier(name: str, slot: str = DEFAULT_SLOT) -> str:
    """`org.foo` for the main slot, `org.foo:1.2` for any other slot."""
    slot = str(slot or DEFAULT_SLOT)
    return name if slot == DEFAULT_SLOT else f"{name}:{slot}"


def _check_name(v: Any) -> str:
    v = str(v or "").strip()
    if not v:
        raise ValueError("module name required")
    if not _NAME_RE.fullmatch(v):
        raise ValueError(f"module name contains invalid characters: {v!r}")
    return v


class ModuleDependency(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    slot: str = DEFAULT_SLOT
    optional: bool = False
    export: bool = False
    services: str = "none"

    @field_validator("name", mode="before")
    @classmethod
    def _norm_name(cls, v: Any) -> str:
        return _check_name(v)

    @field_validator("slot", mode="before")
    @classmethod
    def _norm_slot(cls, v: Any) -> str:
        return str(v or "").strip() or DEFAULT_SLOT

    @property
    def identifier(self) -> str:
        return module_identifier(self.name, self.slot)


class ModuleDescriptor(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    slot: str = DEFAULT_SLOT
    dependencies: List[ModuleDependency] = Field(default_factory=list)
    private: bool = False
    # module-alias descriptors carry no dependencies of their own, only a target.
    alias_target: Optional[str] = None
    layer: str = "base"
    descriptor_path: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _norm_name(cls, v: Any) -> str:
        return _check_name(v)

    @field_validator("slot", mode="before")
    @classmethod
    def _norm_slot(cls, v: Any) -> str:
        return str(v or "").strip() or DEFAULT_SLOT

    @property
    def identifier(self) -> str:
        return module_identifier(self.name, self.slot)

    @property
    def is_alias(self) -> bool:
        return self.alias_target is not None
