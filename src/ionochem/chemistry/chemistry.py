from __future__ import annotations

from typing import Dict, Iterator, Mapping, Optional, Tuple
import logging

import numpy as np

from ionochem.config import ChemistryConfig
from ionochem.errors import ChemistryError, MissingFieldError
from ionochem.species.ions import IonContainer
from ionochem.species.neutrals import NeutralContainer
from ionochem.species.registry import SpeciesRegistry
from ionochem.chemistry.reaction import Reaction, SpeciesRef, format_reaction
from ionochem.chemistry.chemistry_parser import ReactionTable, read_chemistry_file
from ionochem.chemistry.perturbation import perturb_reactions
from ionochem.chemistry.chemistry_helper import (
    apply_piecewise_range,
    compute_rate_coefficient,
    solve_chemistry_implicit,
)

log = logging.getLogger(__name__)


class Chemistry:
    """
    Reaction network read from a CSV reaction table, plus the per-step
    source/loss evaluation and implicit density update.

    Parameters
    ----------
    neutrals : NeutralContainer
    ions : IonContainer
        Species containers; names in the table are resolved against them once,
        at construction. The same containers must be passed to the per-step calls.
    config : ChemistryConfig
        Reaction table path, perturbation settings and floors.
    rng : numpy.random.Generator, optional
        Generator used for rate perturbation. Defaults to one seeded with
        ``config.seed`` (OS entropy when the seed is None).

    Attributes
    ----------
    reactions : tuple[Reaction, ...]
        The network, in table order. Not modified after construction.
    heating : np.ndarray
        Chemical heating rate, sum over reactions of flux * energy, from the
        last call to calc_chemical_sources.
    """

    def __init__(
        self,
        neutrals: NeutralContainer,
        ions: IonContainer,
        config: ChemistryConfig,
        *,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.config = config
        self.grid = neutrals.grid
        self.registry = SpeciesRegistry(neutrals, ions)

        try:
            self.table: ReactionTable = read_chemistry_file(
                config.chemistry_file, self.registry, verbose=config.verbose
            )
            if rng is None:
                rng = np.random.default_rng(config.seed)
            self.reactions: Tuple[Reaction, ...] = perturb_reactions(self.table, config.perturb, rng)
        except ChemistryError as e:
            log.error("Failed to load chemistry from %s: %s", config.chemistry_file, e)
            raise

        self.heating = self.grid.zeros()

    # ------------------------- Public API ---------------------------------

    def __len__(self) -> int:
        return len(self.reactions)

    def __iter__(self) -> Iterator[Reaction]:
        return iter(self.reactions)

    def __getitem__(self, i: int) -> Reaction:
        return self.reactions[i]

    def display_reactions(self) -> None:
        for i, reaction in enumerate(self.reactions):
            log.info("Reaction %d:\n%s", i + 1, format_reaction(reaction))

    def required_fields(self) -> Tuple[str, ...]:
        """Names of every grid field referenced by a rate formula or validity range."""
        names = []
        for reaction in self.reactions:
            for name in reaction.referenced_fields():
                if name not in names:
                    names.append(name)
        return tuple(names)

    @staticmethod
    def default_fields(neutrals: NeutralContainer, ions: IonContainer) -> Dict[str, np.ndarray]:
        return {
            "Tn": neutrals.temperature_grid,
            "Ti": ions.Ti_grid,
            "Te": ions.Te_grid,
        }

    # ------------------------- Per step -----------------------------------

    def initialize_sources_and_losses(self, neutrals: NeutralContainer, ions: IonContainer) -> None:
        """
        Photoionization removes neutrals and produces ions; chemistry adds on top.
        """
        for i in range(neutrals.n_species):
            neutrals.list_losses_grid[i][:, :, :] = neutrals.list_ionization_grid[i]
            neutrals.list_sources_grid[i][:, :, :] = 0.0

        for i in range(ions.n_ions):
            ions.list_losses_grid[i][:, :, :] = 0.0
            ions.list_sources_grid[i][:, :, :] = ions.list_ionization_grid[i]

        ions.list_losses_grid[ions.electron_id][:, :, :] = 0.0
        ions.list_sources_grid[ions.electron_id][:, :, :] = 0.0

        self.heating[:, :, :] = 0.0

    def _resolve_fields(self, neutrals, ions, fields) -> Dict[str, np.ndarray]:
        all_fields = self.default_fields(neutrals, ions)
        if fields:
            all_fields.update(fields)

        missing = [name for name in self.required_fields() if name not in all_fields]
        if missing:
            raise MissingFieldError(f"Reaction network needs field(s) not supplied: {missing}")

        for name in self.required_fields():
            self.grid.check_field(all_fields[name], name)
        return all_fields

    def reaction_flux(
        self,
        reaction: Reaction,
        neutrals: NeutralContainer,
        ions: IonContainer,
        fields: Mapping[str, np.ndarray],
    ) -> np.ndarray:
        """
        Mass-action flux [m^-3/s] of one reaction over the whole grid:
        k_eff * branching_ratio * prod(reactant densities).
        """
        if reaction.is_temperature_dependent:
            flux = compute_rate_coefficient(
                float(reaction.rate),
                float(reaction.numerator),
                float(reaction.exponent),
                np.ascontiguousarray(fields[reaction.denominator], dtype=np.float64),
                float(self.config.temperature_floor),
            )
            flux *= reaction.branching_ratio
        else:
            flux = self.grid.full(reaction.rate * reaction.branching_ratio)

        for ref in reaction.losses:
            flux *= self._density(ref, neutrals, ions)

        if reaction.has_range:
            apply_piecewise_range(
                flux,
                np.ascontiguousarray(fields[reaction.piecewise_var], dtype=np.float64),
                float(reaction.min),
                float(reaction.max),
            )
        return flux

    @staticmethod
    def _density(ref: SpeciesRef, neutrals, ions):
        container = neutrals if ref.is_neutral else ions
        return container.list_density_grid[ref.id]

    def calc_chemical_sources(
        self,
        neutrals: NeutralContainer,
        ions: IonContainer,
        fields: Optional[Mapping[str, np.ndarray]] = None,
    ) -> None:
        """
        Walk the network once and accumulate every reaction's flux into the
        loss fields of its reactants and the source fields of its products.

        `fields` maps names used in the Denominator/Piecewise columns to grid
        fields; Tn, Ti and Te default to the container temperatures.
        Densities are read, never written.
        """
        all_fields = self._resolve_fields(neutrals, ions, fields)
        self.initialize_sources_and_losses(neutrals, ions)

        for reaction in self.reactions:
            flux = self.reaction_flux(reaction, neutrals, ions, all_fields)

            # a species listed twice is consumed twice
            for ref in reaction.losses:
                container = neutrals if ref.is_neutral else ions
                container.list_losses_grid[ref.id] += flux

            for ref in reaction.sources:
                container = neutrals if ref.is_neutral else ions
                container.list_sources_grid[ref.id] += flux

            if reaction.energy != 0.0:
                self.heating += flux * reaction.energy

    def solve_densities(self, neutrals: NeutralContainer, ions: IonContainer, dt: float) -> None:
        """Implicit update of every neutral and ion density; electrons are derived, not solved."""
        floor = float(self.config.density_floor)

        for i in range(neutrals.n_species):
            neutrals.list_density_grid[i][:, :, :] = solve_chemistry_implicit(
                neutrals.list_density_grid[i],
                neutrals.list_sources_grid[i],
                neutrals.list_losses_grid[i],
                float(dt),
                floor,
            )

        for i in range(ions.n_ions):
            ions.list_density_grid[i][:, :, :] = solve_chemistry_implicit(
                ions.list_density_grid[i],
                ions.list_sources_grid[i],
                ions.list_losses_grid[i],
                float(dt),
                floor,
            )

    def calc_chemistry(
        self,
        neutrals: NeutralContainer,
        ions: IonContainer,
        dt: float,
        fields: Optional[Mapping[str, np.ndarray]] = None,
    ) -> None:
        """
        One chemistry step: electrons from ions, sources/losses from the
        network, implicit density update, electrons again.
        """
        if dt < 0.0:
            raise ValueError(f"dt must be >= 0, got {dt}")

        ions.fill_electrons()
        self.calc_chemical_sources(neutrals, ions, fields)
        self.solve_densities(neutrals, ions, dt)
        ions.fill_electrons()
