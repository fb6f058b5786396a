"""Manages the loading and validation of parser configuration.

This module defines the `Config` and `ModeConfig` dataclasses, which hold all
settings for the two parsing modes (plain ``string`` citations and ``html``
marked-up citations), and the `load_config` function, which reads them from
the YAML configuration file. Feature configuration is validated while loading,
so an inconsistent ``feature_order`` fails here rather than halfway through a
training run. Resource paths (model, template, training corpus) are resolved
relative to the configuration file; nothing in the package hard-codes them.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional

import yaml

from .errors import ConfigurationError
from .features import FeatureSpec
from .types import Mode

PATH_KEYS = ("model", "template", "tagged_references", "training_data")

DEFAULT_CRF_PARAMS: Dict[str, Any] = {
    "c1": 0.1,
    "c2": 0.01,
    "max_iterations": 200,
    "feature.possible_transitions": True,
}


@dataclass(frozen=True)
class ModeConfig:
    """
    Settings for a single parsing mode.

    Attributes:
        mode: ``"string"`` or ``"html"``.
        features: The validated feature configuration.
        labels: The set of label names allowed in tagged training references.
        paths: Resolved resource paths keyed by ``model``, ``template``,
               ``tagged_references`` and ``training_data``. Missing keys mean
               the caller must pass the path explicitly.
    """
    mode: Mode
    features: FeatureSpec
    labels: FrozenSet[str]
    paths: Mapping[str, Path] = field(default_factory=dict)

    def path(self, key: str) -> Path:
        """Returns a configured resource path or raises ``ConfigurationError``."""
        try:
            return self.paths[key]
        except KeyError:
            raise ConfigurationError(
                f"No '{key}' path configured for mode '{self.mode}'"
            ) from None


@dataclass(frozen=True)
class Config:
    """
    A typed configuration object for the citation parser.

    Attributes:
        modes: Per-mode settings keyed by mode name.
        pos_tagger: Part-of-speech tagger settings (``enable``, ``spacy_model``).
        crf_params: Training parameters handed to the CRF trainer.
    """
    modes: Mapping[str, ModeConfig]
    pos_tagger: Mapping[str, Any] = field(default_factory=dict)
    crf_params: Mapping[str, Any] = field(default_factory=lambda: dict(DEFAULT_CRF_PARAMS))

    def for_mode(self, mode: str) -> ModeConfig:
        try:
            return self.modes[mode]
        except KeyError:
            raise ConfigurationError(
                f"Unknown mode: {mode}. Configured modes: {sorted(self.modes)}"
            ) from None


def _mode_from_dict(name: str, section: Any, base_dir: Path) -> ModeConfig:
    if name not in ("string", "html"):
        raise ConfigurationError(f"Unknown mode '{name}' in configuration")
    if not isinstance(section, dict):
        raise ConfigurationError(f"Mode '{name}' must be a mapping")

    feature_order = section.get("feature_order")
    if not isinstance(feature_order, list):
        raise ConfigurationError(f"Mode '{name}' is missing a feature_order list")
    spec = FeatureSpec.from_order(feature_order)

    declared = section.get("token_features")
    if declared is not None and tuple(sorted(set(declared))) != spec.token_features:
        raise ConfigurationError(
            f"Mode '{name}' declares token_features {sorted(set(declared))}, "
            f"but its feature_order requires {list(spec.token_features)}"
        )

    labels = section.get("labels")
    if not isinstance(labels, list) or not labels:
        raise ConfigurationError(f"Mode '{name}' is missing a labels list")

    paths: Dict[str, Path] = {}
    for key, value in (section.get("paths") or {}).items():
        if key not in PATH_KEYS:
            raise ConfigurationError(f"Unknown path key '{key}' for mode '{name}'")
        p = Path(value)
        paths[key] = p if p.is_absolute() else base_dir / p

    return ModeConfig(
        mode=name,  # type: ignore[arg-type]
        features=spec,
        labels=frozenset(str(label) for label in labels),
        paths=paths,
    )


def config_from_dict(data: Mapping[str, Any], base_dir: Optional[Path] = None) -> Config:
    """
    Builds a validated `Config` from an already-parsed mapping.

    Args:
        data: The configuration mapping, shaped like ``config.yaml``.
        base_dir: Directory relative resource paths are resolved against.

    Raises:
        ConfigurationError: If the mode sections are missing or inconsistent.
    """
    base_dir = base_dir or Path.cwd()
    modes_section = data.get("modes")
    if not isinstance(modes_section, dict) or not modes_section:
        raise ConfigurationError("Configuration must define at least one mode under 'modes'")

    modes = {name: _mode_from_dict(name, section, base_dir) for name, section in modes_section.items()}

    crf_params = dict(DEFAULT_CRF_PARAMS)
    crf_params.update(data.get("crf") or {})

    return Config(
        modes=modes,
        pos_tagger=dict(data.get("pos_tagger") or {}),
        crf_params=crf_params,
    )


def load_config(path: str = "config.yaml") -> Config:
    """
    Loads and validates the parser configuration file.

    Args:
        path: The path to the YAML configuration file.

    Returns:
        A fully populated and validated `Config` object.

    Raises:
        FileNotFoundError: If the specified configuration file cannot be found.
        ValueError: If there is an error parsing the YAML file.
        TypeError: If the root of the YAML file is not a dictionary.
        ConfigurationError: If the feature or label configuration is inconsistent.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            y = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found at: {path}")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML file at {path}: {e}")

    if not isinstance(y, dict):
        raise TypeError(f"Configuration file {path} must be a dictionary.")

    return config_from_dict(y, base_dir=Path(path).resolve().parent)
