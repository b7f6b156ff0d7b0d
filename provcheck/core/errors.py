from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from provcheck.core.ops_log import json_safe


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ProvcheckError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def __str__(self) -> str:
        return f"{self.code}: {self.user_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": json_safe(self.context or {}),
        }


# ---- Fatal: abort the analysis of one installation ----
class ConfigError(ProvcheckError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class InstallationNotFound(ProvcheckError):
    def __init__(self, user_message: str = "Installation directory not found.", **ctx: Any):
        super().__init__("installation_not_found", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class MalformedDescriptor(ProvcheckError):
    def __init__(self, user_message: str = "Module descriptor could not be parsed.", **ctx: Any):
        super().__init__("malformed_descriptor", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class MissingRoot(ProvcheckError):
    def __init__(self, user_message: str = "Root module not found in installation.", **ctx: Any):
        super().__init__("missing_root", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class UnknownRoot(ProvcheckError):
    def __init__(self, user_message: str = "Scan root is not a module of the graph.", **ctx: Any):
        super().__init__("unknown_root", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class UnknownModule(ProvcheckError):
    def __init__(self, user_message: str = "Module is not part of the graph.", **ctx: Any):
        super().__init__("unknown_module", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class BrokenInstallation(ProvcheckError):
    def __init__(self, user_message: str = "Reachable modules are not provisioned.", **ctx: Any):
        super().__init__("broken_installation", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)


# ---- Reportable: accumulated and surfaced together ----
class DiffMismatch(ProvcheckError):
    def __init__(self, user_message: str = "Expected and actual module sets differ.", **ctx: Any):
        super().__init__("diff_mismatch", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class BannedModuleViolation(ProvcheckError):
    def __init__(self, user_message: str = "Banned modules were provisioned.", **ctx: Any):
        super().__init__("banned_module_violation", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)

    @classmethod
    def from_violations(cls, violations: Dict[Any, Any]) -> "BannedModuleViolation":
        found = []
        for key in sorted(violations):
            v = violations[key]
            found.append({"installation": v.installation_name, "module": v.module_name, "paths": list(v.paths)})
        return cls(f"{len(found)} banned module occurrence(s) provisioned.", violations=found)


class BootTimeout(ProvcheckError):
    def __init__(self, user_message: str = "Server did not start within the time limit.", **ctx: Any):
        super().__init__("boot_timeout", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class BootFailed(ProvcheckError):
    def __init__(self, user_message: str = "Server failed to start cleanly.", **ctx: Any):
        super().__init__("boot_failed", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)
