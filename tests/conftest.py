"""
Shared pytest fixtures for the discmc test-suite.

These fixtures expose the sample data files and small ready-made systems
so individual tests do not repeat I/O or setup logic.
"""

from __future__ import annotations

import pathlib
import sys
from typing import Any, Dict

import pytest
import yaml

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from discmc.file_formats import load_force_field, load_topology  # noqa: E402
from discmc.force_field import ForceField  # noqa: E402
from discmc.topology import Topology  # noqa: E402


@pytest.fixture(scope="session")
def project_root() -> pathlib.Path:
    """Return repository root directory."""
    return REPO_ROOT


@pytest.fixture(scope="session")
def data_dir(project_root: pathlib.Path) -> pathlib.Path:
    return project_root / "tests" / "data"


@pytest.fixture(scope="session")
def default_preset(project_root: pathlib.Path) -> Dict[str, Any]:
    """Parsed representation of the default settings preset."""
    with (project_root / "config" / "presets" / "default.yaml").open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


@pytest.fixture
def disc_topology(data_dir: pathlib.Path) -> Topology:
    return load_topology(data_dir / "discs.top")


@pytest.fixture
def disc_force_field(data_dir: pathlib.Path) -> ForceField:
    return load_force_field(data_dir / "discs.ff")


@pytest.fixture
def hard_discs() -> ForceField:
    return ForceField.hard_disc(1.0)

