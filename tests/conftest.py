"""Shared fixtures for the citation parser tests."""
from __future__ import annotations

import dataclasses
import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


_ensure_project_root_on_path()

from citeparse.config import load_config  # noqa: E402

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def config():
    """The shipped configuration with POS tagging switched off."""
    cfg = load_config(str(PROJECT_ROOT / "config.yaml"))
    return dataclasses.replace(cfg, pos_tagger={"enable": False})
