"""
Utilities for loading sampler tuning parameters from YAML files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import InputFormatError, InputMissingError

KNOWN_SECTIONS = {"seed", "integrator", "jiggle", "replica", "metadata"}


@dataclass
class IntegratorSettings:
    i_adjust: int = 1000
    initial_d_max: Optional[float] = None
    low_acceptance: float = 0.3
    high_acceptance: float = 0.7
    shrink_factor: float = 3.9
    grow_factor: float = 3.0


@dataclass
class JiggleSettings:
    d_max: float = 0.5
    steps_per_object: int = 2000


@dataclass
class ReplicaSettings:
    exchange_factor: int = 20
    adjust_every: int = 20
    workers: int = 1


@dataclass
class SamplerSettings:
    """Container returned by the settings loader."""

    seed: Optional[int] = None
    integrator: IntegratorSettings = field(default_factory=IntegratorSettings)
    jiggle: JiggleSettings = field(default_factory=JiggleSettings)
    replica: ReplicaSettings = field(default_factory=ReplicaSettings)
    metadata: Dict[str, Any] = field(default_factory=dict)


def load_settings_from_yaml(path: Path) -> SamplerSettings:
    """Load sampler settings from a YAML document; missing keys keep their defaults."""
    data = _load_yaml(Path(path))
    return settings_from_mapping(data, source=str(path))


def settings_from_mapping(data: Dict[str, Any], *, source: str = "<settings>") -> SamplerSettings:
    unknown = set(data) - KNOWN_SECTIONS
    if unknown:
        raise InputFormatError(f"Unknown settings sections: {', '.join(sorted(unknown))}.", source=source)
    try:
        seed = data.get("seed")
        settings = SamplerSettings(
            seed=int(seed) if seed is not None else None,
            integrator=_build_integrator(data.get("integrator") or {}),
            jiggle=_build_jiggle(data.get("jiggle") or {}),
            replica=_build_replica(data.get("replica") or {}),
            metadata=dict(data.get("metadata") or {}),
        )
    except (TypeError, ValueError) as exc:
        raise InputFormatError(f"Invalid settings value: {exc}", source=source) from exc
    _validate(settings, source)
    return settings


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            content = yaml.safe_load(handle)
    except FileNotFoundError:
        raise InputMissingError(f"Settings file {path} does not exist.") from None
    except yaml.YAMLError as exc:
        raise InputFormatError(f"Invalid YAML: {exc}", source=str(path)) from exc
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise InputFormatError("YAML file must contain a mapping at the root.", source=str(path))
    return content


def _build_integrator(config: Dict[str, Any]) -> IntegratorSettings:
    initial = config.get("initial_d_max")
    return IntegratorSettings(
        i_adjust=int(config.get("i_adjust", 1000)),
        initial_d_max=float(initial) if initial is not None else None,
        low_acceptance=float(config.get("low_acceptance", 0.3)),
        high_acceptance=float(config.get("high_acceptance", 0.7)),
        shrink_factor=float(config.get("shrink_factor", 3.9)),
        grow_factor=float(config.get("grow_factor", 3.0)),
    )


def _build_jiggle(config: Dict[str, Any]) -> JiggleSettings:
    return JiggleSettings(
        d_max=float(config.get("d_max", 0.5)),
        steps_per_object=int(config.get("steps_per_object", 2000)),
    )


def _build_replica(config: Dict[str, Any]) -> ReplicaSettings:
    return ReplicaSettings(
        exchange_factor=int(config.get("exchange_factor", 20)),
        adjust_every=int(config.get("adjust_every", 20)),
        workers=int(config.get("workers", 1)),
    )


def _validate(settings: SamplerSettings, source: str) -> None:
    integrator = settings.integrator
    if integrator.i_adjust <= 0:
        raise InputFormatError("integrator.i_adjust must be positive.", source=source)
    if not 0.0 <= integrator.low_acceptance < integrator.high_acceptance <= 1.0:
        raise InputFormatError("Acceptance band must satisfy 0 <= low < high <= 1.", source=source)
    if integrator.shrink_factor <= 1.0 or integrator.grow_factor <= 1.0:
        raise InputFormatError("Step-size factors must be greater than 1.", source=source)
    if settings.jiggle.d_max <= 0.0 or settings.jiggle.steps_per_object <= 0:
        raise InputFormatError("Jiggle parameters must be positive.", source=source)
    replica = settings.replica
    if replica.exchange_factor <= 0 or replica.adjust_every <= 0 or replica.workers <= 0:
        raise InputFormatError("Replica parameters must be positive.", source=source)
