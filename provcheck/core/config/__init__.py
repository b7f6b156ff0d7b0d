from provcheck.core.config.loader import load_check_config
from provcheck.core.config.models import BootConfig, LayersCheckConfig

__all__ = ["BootConfig", "LayersCheckConfig", "load_check_config"]
