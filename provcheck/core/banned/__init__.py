from provcheck.core.banned.checker import BannedModulesConfig, BannedViolation, check_banned

__all__ = ["BannedModulesConfig", "BannedViolation", "check_banned"]
