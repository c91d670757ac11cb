from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class SpeciesRef:
    """A resolved reactant/product slot."""
    name: str
    id: int
    is_neutral: bool


@dataclass(frozen=True)
class Reaction:
    """
    One row of the reaction table (or a continuation row).

    Rate coefficient evaluated per cell:
        formula_type == 0 : k = rate
        formula_type  > 0 : k = rate * (numerator / field[denominator]) ** exponent
    and the reaction only applies where min <= field[piecewise_var] <= max,
    unless min == max == 0.
    """
    losses: Tuple[SpeciesRef, ...]
    sources: Tuple[SpeciesRef, ...]
    rate: float
    branching_ratio: float = 1.0
    energy: float = 0.0

    numerator: float = 0.0
    denominator: str = ""
    exponent: float = 1.0
    formula_type: int = 0

    piecewise_var: str = ""
    min: float = 0.0
    max: float = 0.0

    row: int = field(default=-1, compare=False)

    @property
    def n_losses(self) -> int:
        return len(self.losses)

    @property
    def n_sources(self) -> int:
        return len(self.sources)

    @property
    def is_temperature_dependent(self) -> bool:
        return self.formula_type > 0

    @property
    def has_range(self) -> bool:
        return not (self.min == 0.0 and self.max == 0.0)

    @property
    def is_valid(self) -> bool:
        return self.n_losses > 0 and self.n_sources > 0

    def referenced_fields(self) -> Tuple[str, ...]:
        names = []
        if self.is_temperature_dependent:
            names.append(self.denominator)
        if self.has_range:
            names.append(self.piecewise_var)
        return tuple(names)

    def __str__(self) -> str:
        lhs = " + ".join(s.name for s in self.losses)
        rhs = " + ".join(s.name for s in self.sources)
        return f"{lhs} -> {rhs}"


def format_reaction(reaction: Reaction) -> str:
    """Multi-line human readable rendering, for logs only."""
    def _names(refs):
        return " + ".join(s.name for s in refs)

    def _ids(refs):
        return " + ".join(f"{s.id}({int(s.is_neutral)})" for s in refs)

    lines = [
        f"Number of Losses : {reaction.n_losses}",
        f"Number of Sources : {reaction.n_sources}",
        f"{_names(reaction.losses)} -> {_names(reaction.sources)} ( RR : {reaction.rate:g})",
        f"{_ids(reaction.losses)} -> {_ids(reaction.sources)} ( RR : {reaction.rate:g})",
    ]
    if reaction.branching_ratio != 1.0:
        lines.append(f"Branching Ratio: {reaction.branching_ratio:g}")
    if reaction.formula_type > 0:
        lines.append(
            f"Temperature Dependence: ({reaction.numerator:g}/{reaction.denominator})^{reaction.exponent:g}"
        )
    if reaction.min < reaction.max:
        lines.append(f"Range: {reaction.min:g} < {reaction.piecewise_var} < {reaction.max:g}")
    return "\n".join(lines)
