from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from provcheck.core.errors import Severity


class CheckStatus(str, Enum):
    OK = "OK"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class OverallStatus(str, Enum):
    OK = "OK"
    FAILED = "FAILED"


class CheckResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    check_id: str
    status: CheckStatus
    message: str
    remediation: Optional[str] = None
    severity: Severity = Severity.INFO
    error_code: str = ""
    details: Dict[str, Any] = Field(default_factory=dict)


class PhaseResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phase_id: int
    name: str
    status: CheckStatus
    checks: List[CheckResult] = Field(default_factory=list)

    def failed(self) -> List[CheckResult]:
        return [c for c in self.checks if c.status == CheckStatus.FAILED]


class LayersCheckReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    overall_status: OverallStatus
    phases: List[PhaseResult]
    failures: List[str] = Field(default_factory=list)
    remediation_steps: List[str] = Field(default_factory=list)
    installations: List[str] = Field(default_factory=list)
    trace_id: str = ""
    timestamp: float = Field(default_factory=lambda: time.time())

    @property
    def ok(self) -> bool:
        return self.overall_status == OverallStatus.OK

    def phase(self, phase_id: int) -> Optional[PhaseResult]:
        for ph in self.phases:
            if ph.phase_id == phase_id:
                return ph
        return None
