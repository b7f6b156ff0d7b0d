from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from provcheck.core.config.io import read_json_file
from provcheck.core.config.models import LayersCheckConfig
from provcheck.core.errors import ConfigError

ENV_LAYERS_INSTALL_ROOT = "PROVCHECK_LAYERS_INSTALL_ROOT"
ENV_DEFAULT_INSTALL_ROOT = "PROVCHECK_DEFAULT_INSTALL_ROOT"
ENV_DELETE_INSTALLATIONS = "PROVCHECK_DELETE_INSTALLATIONS"


def _env_bool(v: str) -> bool:
    return str(v or "").strip().lower() in {"1", "true", "yes", "on"}


def env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if env.get(ENV_LAYERS_INSTALL_ROOT):
        out["layers_install_root"] = env[ENV_LAYERS_INSTALL_ROOT]
    if env.get(ENV_DEFAULT_INSTALL_ROOT):
        out["default_configs_root"] = env[ENV_DEFAULT_INSTALL_ROOT]
    if ENV_DELETE_INSTALLATIONS in env:
        out["delete_installations"] = _env_bool(env[ENV_DELETE_INSTALLATIONS])
    return out


def load_check_config(
    path: Optional[str] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> LayersCheckConfig:
    """
    Build the run configuration: JSON file (optional), then environment,
    then explicit overrides. Later sources win.
    """
    raw: Dict[str, Any] = {}
    if path:
        rr = read_json_file(path)
        if not rr.ok:
            raise ConfigError(f"Unable to read config file {path}.", path=path, error=rr.error)
        raw.update(rr.data)
    raw.update(env_overrides(os.environ if env is None else env))
    if overrides:
        raw.update(overrides)
    try:
        return LayersCheckConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError("Invalid layers check configuration.", path=path or "", error=str(e)[:500]) from e
