from provcheck.core.execution.verifier import BootResult, BootVerifier

__all__ = ["BootResult", "BootVerifier"]
