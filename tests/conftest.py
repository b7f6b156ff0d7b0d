from __future__ import annotations

import os

import pytest

from provcheck.core.config.models import LayersCheckConfig
from provcheck.core.ops_log import OpsLogger


@pytest.fixture
def layers_root(tmp_path):
    """
    Empty directory that plays the layers install root.
    """
    root = tmp_path / "layers"
    os.makedirs(root, exist_ok=True)
    return root


@pytest.fixture
def ops_logger(tmp_path):
    return OpsLogger(path=str(tmp_path / "logs" / "ops.jsonl"))


@pytest.fixture
def check_config(tmp_path, layers_root):
    return LayersCheckConfig(
        layers_install_root=str(layers_root),
        banned_modules={},
        logs_dir=str(tmp_path / "logs"),
    )
