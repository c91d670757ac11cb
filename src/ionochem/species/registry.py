from __future__ import annotations

from typing import Tuple

from ionochem.errors import UnresolvedSpeciesError
from ionochem.species.ions import IonContainer
from ionochem.species.neutrals import NeutralContainer

NEUTRAL = "neutral"
ION = "ion"


class SpeciesRegistry:
    """
    Name -> (id, kind) lookup over a neutral and an ion container.
    Neutrals are searched first, as a name can only belong to one of them.
    """

    def __init__(self, neutrals: NeutralContainer, ions: IonContainer) -> None:
        self.neutrals = neutrals
        self.ions = ions

        overlap = set(neutrals.str_species_list) & set(ions.names())
        if overlap:
            raise ValueError(f"Species listed as both neutral and ion: {sorted(overlap)}")

    def resolve(self, name: str) -> Tuple[int, str]:
        name = name.strip()
        idx = self.neutrals.get_species_id(name)
        if idx >= 0:
            return idx, NEUTRAL
        idx = self.ions.get_species_id(name)
        if idx >= 0:
            return idx, ION
        raise UnresolvedSpeciesError(f"Unknown species '{name}'")

    def __contains__(self, name: str) -> bool:
        try:
            self.resolve(name)
        except UnresolvedSpeciesError:
            return False
        return True
