from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from provcheck.core.banned.checker import BannedModulesConfig
from provcheck.core.diff.expectations import ExpectationSet, compose_expectations, fragment
from provcheck.core.diff.presets import DEFAULT_BANNED_MODULES, VARIANTS, expectations_for_variant
from provcheck.core.modules.installation import DEFAULT_MODULES_DIR, DEFAULT_ROOT_MODULE, DEFAULT_SERVER_CONFIG


class BootConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # relative entries are resolved against the installation directory
    command: List[str] = Field(default_factory=lambda: [os.path.join("bin", "standalone.sh")])
    timeout_seconds: float = Field(default=120.0, gt=0, le=3600)
    shutdown_grace_seconds: float = Field(default=10.0, gt=0, le=600)
    started_marker: str = Field(default="WFLYSRV0025", min_length=1)
    failure_markers: List[str] = Field(default_factory=lambda: ["WFLYSRV0026", "WFLYSRV0056"])
    env: Dict[str, str] = Field(default_factory=dict)

    @field_validator("command")
    @classmethod
    def _command_not_empty(cls, v: List[str]) -> List[str]:
        v = [str(x) for x in v if str(x or "").strip()]
        if not v:
            raise ValueError("boot command required")
        return v


class LayersCheckConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: int = Field(default=1, ge=1, le=1)
    layers_install_root: str = Field(min_length=1)
    default_configs_root: str = ""
    delete_installations: bool = False

    reference_installation: str = Field(default="test-standalone-reference", min_length=1)
    layered_installation: str = Field(default="test-all-layers", min_length=1)
    root_module: str = Field(default=DEFAULT_ROOT_MODULE, min_length=1)
    server_config: str = DEFAULT_SERVER_CONFIG
    modules_dir: str = DEFAULT_MODULES_DIR
    follow_optional: bool = True

    variant: Optional[str] = None
    expected_unreferenced: List[str] = Field(default_factory=list)
    expected_unused_in_all_layers: List[str] = Field(default_factory=list)
    banned_modules: Dict[str, List[str]] = Field(default_factory=lambda: {k: list(v) for k, v in DEFAULT_BANNED_MODULES.items()})

    boot: BootConfig = Field(default_factory=BootConfig)
    logs_dir: str = "logs"

    @field_validator("variant")
    @classmethod
    def _known_variant(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if v not in VARIANTS:
            raise ValueError(f"unknown variant {v!r}; expected one of {sorted(VARIANTS)}")
        return v

    def expectations(self) -> ExpectationSet:
        extra = fragment(
            "config",
            unreferenced=self.expected_unreferenced,
            unused_in_all_layers=self.expected_unused_in_all_layers,
        )
        if self.variant:
            return expectations_for_variant(self.variant, extra)
        return compose_expectations(extra)

    def banned(self) -> BannedModulesConfig:
        return BannedModulesConfig(banned=self.banned_modules)

    def load_options(self) -> Dict[str, Any]:
        return {
            "root_module": self.root_module,
            "server_config": self.server_config,
            "modules_dir": self.modules_dir,
        }
