"""Tests for the YAML sampler settings loader."""

from __future__ import annotations

import pathlib
from typing import Any, Dict

import pytest

from discmc.errors import InputFormatError, InputMissingError
from discmc.settings_loader import SamplerSettings, load_settings_from_yaml, settings_from_mapping


def test_defaults_without_any_file() -> None:
    settings = SamplerSettings()
    assert settings.seed is None
    assert settings.integrator.i_adjust == 1000
    assert settings.integrator.initial_d_max is None
    assert settings.jiggle.d_max == 0.5
    assert settings.replica.exchange_factor == 20
    assert settings.replica.workers == 1


def test_default_preset_matches_built_in_defaults(project_root: pathlib.Path, default_preset: Dict[str, Any]) -> None:
    assert default_preset["metadata"]["name"] == "default"
    loaded = load_settings_from_yaml(project_root / "config" / "presets" / "default.yaml")
    defaults = SamplerSettings()
    assert loaded.integrator == defaults.integrator
    assert loaded.jiggle == defaults.jiggle
    assert loaded.replica == defaults.replica


def test_parallel_tempering_preset(project_root: pathlib.Path) -> None:
    settings = load_settings_from_yaml(project_root / "config" / "presets" / "parallel_tempering.yaml")
    assert settings.seed == 12345
    assert settings.integrator.i_adjust == 500
    assert settings.replica.workers == 4


def test_sample_settings_override_only_given_keys(data_dir: pathlib.Path) -> None:
    settings = load_settings_from_yaml(data_dir / "sample_settings.yaml")
    assert settings.seed == 7
    assert settings.integrator.i_adjust == 200
    assert settings.integrator.low_acceptance == 0.3
    assert settings.jiggle.d_max == 0.25
    assert settings.jiggle.steps_per_object == 2000
    assert settings.replica.exchange_factor == 5
    assert settings.replica.adjust_every == 20
    assert settings.replica.workers == 2
    assert settings.metadata == {"name": "test"}


def test_empty_document_gives_defaults(tmp_path: pathlib.Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_settings_from_yaml(path) == SamplerSettings()


def test_unknown_section_is_rejected() -> None:
    with pytest.raises(InputFormatError, match="Unknown settings sections: sampler"):
        settings_from_mapping({"sampler": {}})


def test_non_mapping_root_is_rejected(tmp_path: pathlib.Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(InputFormatError, match="mapping"):
        load_settings_from_yaml(path)


def test_invalid_yaml_is_reported(tmp_path: pathlib.Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("integrator: [1, 2\n", encoding="utf-8")
    with pytest.raises(InputFormatError):
        load_settings_from_yaml(path)


def test_missing_file_is_reported(tmp_path: pathlib.Path) -> None:
    with pytest.raises(InputMissingError):
        load_settings_from_yaml(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "data",
    [
        {"integrator": {"i_adjust": 0}},
        {"integrator": {"low_acceptance": 0.8}},
        {"integrator": {"grow_factor": 1.0}},
        {"jiggle": {"d_max": -1}},
        {"replica": {"workers": 0}},
        {"integrator": {"i_adjust": "often"}},
    ],
)
def test_invalid_values_are_rejected(data: Dict[str, Any]) -> None:
    with pytest.raises(InputFormatError):
        settings_from_mapping(data, source="inline")
