from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Tuple, Union
import logging

import numpy as np

from ionochem.chemistry.chemistry_parser import PERTURB_COLUMN, ReactionTable
from ionochem.chemistry.reaction import Reaction
from ionochem.errors import ConfigurationError, ParseError

log = logging.getLogger(__name__)


def _parse_index(token: Union[str, int]) -> int:
    """'5', 5 or 'r5' -> 5."""
    if isinstance(token, bool):
        raise ConfigurationError(f"Invalid perturbation index: {token!r}")
    if isinstance(token, int):
        return token
    text = str(token).strip()
    if text and text[0].isalpha():
        text = text[1:]
    try:
        return int(text)
    except ValueError as e:
        raise ConfigurationError(f"Invalid perturbation index: {token!r}") from e


def select_reactions(selection, n_reactions: int) -> List[int]:
    """
    Translate a perturbation selection into 0-based reaction indices.

    ``"all"`` (or a list starting with ``"all"``) selects every reaction;
    otherwise each token names a 1-based reaction index.
    """
    if selection is None:
        return []
    if isinstance(selection, str):
        selection = [selection]
    selection = list(selection)
    if not selection:
        return []
    if isinstance(selection[0], str) and selection[0].strip().lower() == "all":
        return list(range(n_reactions))

    selected = []
    for token in selection:
        index = _parse_index(token)
        if not 1 <= index <= n_reactions:
            raise ConfigurationError(
                f"Perturbation index {token!r} out of range (1..{n_reactions})"
            )
        if index - 1 not in selected:
            selected.append(index - 1)
    return selected


def _relative_std(table: ReactionTable, reaction: Reaction) -> float:
    text = table.cell(reaction.row, PERTURB_COLUMN)
    if not text:
        return 0.0
    try:
        value = float(text)
    except ValueError as e:
        raise ParseError(reaction.row, PERTURB_COLUMN, text, table.path) from e
    if value < 0.0:
        raise ParseError(reaction.row, PERTURB_COLUMN, text, table.path, "a non-negative number")
    return value


def perturb_reactions(
    table: ReactionTable,
    selection,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[Reaction, ...]:
    """
    Return the table's reactions with the selected rates resampled from
    N(rate, (perturb * rate)^2), perturb being the row's relative std.
    """
    reactions = list(table.reactions)
    selected = select_reactions(selection, len(reactions))
    if not selected:
        return tuple(reactions)

    if not table.has_perturb_column:
        log.warning("Perturbation requested but %s has no '%s' column", table.path, PERTURB_COLUMN)
        return tuple(reactions)

    if rng is None:
        rng = np.random.default_rng()

    for i in selected:
        reaction = reactions[i]
        stdv = _relative_std(table, reaction) * abs(reaction.rate)
        if stdv == 0.0:
            continue
        new_rate = float(rng.normal(reaction.rate, stdv))
        if new_rate <= 0.0:
            log.warning("Perturbed rate of reaction %d (%s) is non-positive: %g", i + 1, reaction, new_rate)
        log.info("Perturbing reaction %d (%s): %g -> %g", i + 1, reaction, reaction.rate, new_rate)
        reactions[i] = replace(reaction, rate=new_rate)

    return tuple(reactions)
