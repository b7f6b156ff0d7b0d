from __future__ import annotations

from typing import Any, Dict, Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from provcheck.core.modules.installation import Installation

ViolationKey = Tuple[str, str]


class BannedModulesConfig(BaseModel):
    """
    Banned module name -> installation names allowed to provision it.

    Exemptions are matched by installation name only: `test-all-layers`
    exempts every installation called that, whatever directory holds it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    banned: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)

    @field_validator("banned", mode="before")
    @classmethod
    def _norm(cls, v: Any) -> Dict[str, Tuple[str, ...]]:
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("banned modules must be a mapping")
        out: Dict[str, Tuple[str, ...]] = {}
        for mod, allowed in v.items():
            mod = str(mod or "").strip()
            if not mod:
                raise ValueError("banned module name required")
            if allowed is None:
                allowed = []
            elif isinstance(allowed, str):
                allowed = [allowed]
            out[mod] = tuple(sorted({str(x).strip() for x in allowed if str(x or "").strip()}))
        return out

    def is_exempt(self, module_name: str, installation_name: str) -> bool:
        return installation_name in self.banned.get(module_name, ())


class BannedViolation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    installation_name: str
    module_name: str
    paths: List[str] = Field(default_factory=list)

    def message(self) -> str:
        return f"{self.installation_name} provisions banned module {self.module_name}"


def check_banned(installations: Iterable[Installation], config: BannedModulesConfig) -> Dict[ViolationKey, BannedViolation]:
    insts = list(installations)
    violations: Dict[ViolationKey, BannedViolation] = {}
    for module_name in sorted(config.banned):
        for inst in insts:
            if module_name not in inst.provisioned:
                continue
            if config.is_exempt(module_name, inst.name):
                continue
            key = (inst.name, module_name)
            if key in violations:
                # same name under another parent shares the key
                violations[key].paths.append(inst.path)
                continue
            violations[key] = BannedViolation(installation_name=inst.name, module_name=module_name, paths=[inst.path])
    return violations
