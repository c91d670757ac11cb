"""
Configuration value object for the chemistry engine and its YAML loader.

A minimal config file looks like::

    chemistry:
      file: "./chemistry_earth.csv"
      perturb: ["r3", "r7"]     # or "all"
      seed: 1234                # optional, fixes the perturbation draws
      density_floor: 1.0e-10
      verbose: 0
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union
import logging
import os

import yaml

from ionochem import constants
from ionochem.errors import ConfigurationError

log = logging.getLogger(__name__)

PerturbSpec = Union[str, List[Union[str, int]], None]

_KNOWN_KEYS = {"file", "perturb", "seed", "density_floor", "temperature_floor", "verbose"}


@dataclass(frozen=True)
class ChemistryConfig:
    """
    Settings consumed by :class:`ionochem.chemistry.chemistry.Chemistry`.

    Parameters
    ----------
    chemistry_file : Path
        Reaction table (CSV).
    perturb : str | list | None
        ``"all"`` or a list of 1-based reaction indices to perturb.
    seed : int | None
        Seed for the perturbation generator. ``None`` draws from OS entropy.
    density_floor : float
        Lower bound on densities after the implicit update [m^-3].
    temperature_floor : float
        Lower bound on any field used as a rate-formula denominator.
    verbose : int
        Values >= 3 log every accepted reaction while reading the table.
    """
    chemistry_file: Path
    perturb: PerturbSpec = None
    seed: Optional[int] = None
    density_floor: float = constants.density_floor
    temperature_floor: float = constants.temperature_floor
    verbose: int = 0

    def __post_init__(self):
        object.__setattr__(self, "chemistry_file", Path(self.chemistry_file))
        if self.density_floor <= 0.0:
            raise ConfigurationError("density_floor must be > 0")
        if self.temperature_floor <= 0.0:
            raise ConfigurationError("temperature_floor must be > 0")


def _as_float(section: dict, key: str, default: float) -> float:
    value = section.get(key, default)
    # PyYAML reads "1e-10" (no dot) as a string
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"'chemistry.{key}' must be a number, got {value!r}") from e


def load_config(config_path: Union[str, Path]) -> ChemistryConfig:
    """
    Load the ``chemistry`` section of a YAML config file.

    The reaction table path is resolved relative to the config file location.
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("r") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict) or "chemistry" not in config:
        raise ConfigurationError(f"{config_path}: missing 'chemistry' section")

    section = config["chemistry"]
    if not isinstance(section, dict):
        raise ConfigurationError("'chemistry' section must be a mapping")

    unknown = set(section) - _KNOWN_KEYS
    if unknown:
        raise ConfigurationError(f"Unknown key(s) in 'chemistry' section: {sorted(unknown)}")

    if "file" not in section:
        raise ConfigurationError("'chemistry' section must have 'file'")
    chemistry_file = Path(os.path.join(config_path.parent, section["file"]))

    perturb = section.get("perturb")
    if perturb is not None and not isinstance(perturb, (str, list)):
        raise ConfigurationError("'chemistry.perturb' must be \"all\" or a list of reaction indices")

    seed = section.get("seed")
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise ConfigurationError(f"'chemistry.seed' must be an integer, got {seed!r}")

    verbose = section.get("verbose", 0)
    if isinstance(verbose, bool) or not isinstance(verbose, int):
        raise ConfigurationError(f"'chemistry.verbose' must be an integer, got {verbose!r}")

    cfg = ChemistryConfig(
        chemistry_file=chemistry_file,
        perturb=perturb,
        seed=seed,
        density_floor=_as_float(section, "density_floor", constants.density_floor),
        temperature_floor=_as_float(section, "temperature_floor", constants.temperature_floor),
        verbose=verbose,
    )
    log.info("Loaded chemistry configuration from %s", config_path)
    return cfg
