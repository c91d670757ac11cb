from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple, Union
import csv
import logging

from ionochem import constants
from ionochem.chemistry.reaction import Reaction, SpeciesRef, format_reaction
from ionochem.errors import FormatError, ParseError, ResourceError, UnresolvedSpeciesError
from ionochem.species.registry import NEUTRAL, SpeciesRegistry

log = logging.getLogger(__name__)

LOSS_COLUMNS = tuple(f"loss{i}" for i in range(1, constants.max_species_per_side + 1))
SOURCE_COLUMNS = tuple(f"source{i}" for i in range(1, constants.max_species_per_side + 1))
TEMPERATURE_COLUMNS = ("Numerator", "Denominator", "Exponent", "Piecewise", "Min", "Max", "Formula Type")
REQUIRED_COLUMNS = LOSS_COLUMNS + SOURCE_COLUMNS + ("rate", "branching", "heat") + TEMPERATURE_COLUMNS
PERTURB_COLUMN = "perturb"

ColumnMap = Mapping[str, int]


@dataclass(frozen=True)
class ReactionTable:
    """Result of reading a reaction table: the reactions plus the raw rows behind them."""
    path: Path
    headers: ColumnMap
    rows: Tuple[Tuple[str, ...], ...]
    reactions: Tuple[Reaction, ...]

    def cell(self, row: int, column: str) -> str:
        return _cell(self.rows[row], self.headers, column)

    @property
    def has_perturb_column(self) -> bool:
        return PERTURB_COLUMN in self.headers


# ----------------------- Header / cell helpers -----------------------

def build_column_map(header_row: Sequence[str], path=None) -> ColumnMap:
    """
    Map column name -> index from the first row of the table.
    Every column in REQUIRED_COLUMNS must be present.
    """
    headers = {name.strip(): i for i, name in enumerate(header_row) if name.strip()}
    missing = [c for c in REQUIRED_COLUMNS if c not in headers]
    if missing:
        where = f"{path}: " if path is not None else ""
        raise FormatError(f"{where}header is missing required column(s): {', '.join(missing)}")
    return MappingProxyType(headers)


def _cell(line: Sequence[str], headers: ColumnMap, column: str) -> str:
    idx = headers[column]
    if idx >= len(line):
        return ""
    return line[idx].strip()


def _float_cell(line, headers, column, row, path, default: Optional[float] = None) -> Optional[float]:
    text = _cell(line, headers, column)
    if not text:
        return default
    try:
        return float(text)
    except ValueError as e:
        raise ParseError(row, column, text, path) from e


def _int_cell(line, headers, column, row, path, default: int = 0) -> int:
    value = _float_cell(line, headers, column, row, path)
    if value is None:
        return default
    if not value.is_integer() or value < 0:
        raise ParseError(row, column, _cell(line, headers, column), path, "a non-negative integer")
    return int(value)


def _resolve_slots(line, headers, columns, registry: SpeciesRegistry, row) -> Tuple[SpeciesRef, ...]:
    refs: List[SpeciesRef] = []
    for column in columns:
        name = _cell(line, headers, column)
        if not name:
            continue
        try:
            idx, kind = registry.resolve(name)
        except UnresolvedSpeciesError as e:
            log.debug("line %d, %s: %s, slot ignored", row + 1, column, e)
            continue
        refs.append(SpeciesRef(name=name, id=idx, is_neutral=(kind == NEUTRAL)))
    return tuple(refs)


# ----------------------- Row interpretation -----------------------

def interpret_reaction_line(
    line: Sequence[str],
    headers: ColumnMap,
    registry: SpeciesRegistry,
    row: int,
    path=None,
) -> Reaction:
    """
    Build a Reaction from one data row. The result may have no losses and no
    sources, in which case the caller treats it as a continuation row.
    """
    log.debug("interpreting chemistry line %d : %s", row + 1, _cell(line, headers, "loss1"))

    losses = _resolve_slots(line, headers, LOSS_COLUMNS, registry, row)
    sources = _resolve_slots(line, headers, SOURCE_COLUMNS, registry, row)

    rate = _float_cell(line, headers, "rate", row, path)
    if rate is None:
        raise FormatError(f"{path}: line {row + 1} has no rate")

    branching_ratio = _float_cell(line, headers, "branching", row, path, default=1.0)
    energy = _float_cell(line, headers, "heat", row, path, default=0.0)

    numerator = _float_cell(line, headers, "Numerator", row, path)
    denominator = _cell(line, headers, "Denominator")
    exponent = _float_cell(line, headers, "Exponent", row, path, default=1.0)
    formula_type = _int_cell(line, headers, "Formula Type", row, path, default=0)

    piecewise_var = _cell(line, headers, "Piecewise")
    vmin = _float_cell(line, headers, "Min", row, path, default=0.0)
    vmax = _float_cell(line, headers, "Max", row, path, default=0.0)

    if formula_type > 0 and (numerator is None or not denominator):
        raise FormatError(
            f"{path}: line {row + 1} has Formula Type {formula_type} but no Numerator/Denominator"
        )
    if numerator is not None and formula_type == 0:
        log.warning(
            "line %d: Numerator given but Formula Type is 0, using the constant rate", row + 1
        )

    return Reaction(
        losses=losses,
        sources=sources,
        rate=rate,
        branching_ratio=branching_ratio,
        energy=energy,
        numerator=0.0 if numerator is None else numerator,
        denominator=denominator,
        exponent=exponent,
        formula_type=formula_type,
        piecewise_var=piecewise_var,
        min=vmin,
        max=vmax,
        row=row,
    )


def inherit_from(previous: Reaction, reaction: Reaction) -> Reaction:
    """
    Continuation row: same reactants/products as `previous`, own rate formula
    and validity range (e.g. a second temperature segment).
    """
    return replace(
        reaction,
        losses=previous.losses,
        sources=previous.sources,
        branching_ratio=previous.branching_ratio,
        energy=previous.energy,
        piecewise_var=previous.piecewise_var,
    )


def _check_range(reaction: Reaction, path) -> None:
    if not reaction.has_range:
        return
    if not reaction.piecewise_var:
        raise FormatError(f"{path}: line {reaction.row + 1} has a Min/Max range but no Piecewise variable")
    # a blank Max reads as 0
    if reaction.min > reaction.max:
        raise FormatError(
            f"{path}: line {reaction.row + 1} has an empty range "
            f"({reaction.min:g} > {reaction.max:g} for {reaction.piecewise_var})"
        )


# ----------------------- File reader -----------------------

def _read_rows(path: Path) -> List[List[str]]:
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as fh:
            return [row for row in csv.reader(fh)]
    except (OSError, UnicodeDecodeError) as e:
        raise ResourceError(f"Could not open chemistry file {path}: {e}") from e
    except csv.Error as e:
        raise FormatError(f"{path}: malformed CSV: {e}") from e


def read_chemistry_file(
    path: Union[str, Path],
    registry: SpeciesRegistry,
    *,
    verbose: int = 0,
) -> ReactionTable:
    """
    Read a reaction table (CSV).

    Row 0 holds the column names, row 1 (units) is skipped, every following
    row is a reaction, a continuation of the previous reaction, or a comment
    (blank ``rate`` cell).

    Raises
    ------
    ResourceError
        The file cannot be opened.
    FormatError
        Fewer than 3 rows, missing header columns, or a continuation row
        with no reaction before it.
    ParseError
        A numeric cell does not hold a number.
    """
    path = Path(path)
    log.info("Reading Chemistry File : %s", path)

    rows = _read_rows(path)
    if len(rows) <= constants.n_header_rows:
        raise FormatError(f"{path}: needs a header row, a units row and at least one reaction row")

    headers = build_column_map(rows[0], path)

    reactions: List[Reaction] = []
    previous: Optional[Reaction] = None

    for iline in range(constants.n_header_rows, len(rows)):
        line = rows[iline]
        # comment / trailing rows have no rate
        if not _cell(line, headers, "rate"):
            continue

        reaction = interpret_reaction_line(line, headers, registry, iline, path)

        if reaction.n_losses == 0 and reaction.n_sources == 0:
            if previous is None:
                raise FormatError(
                    f"{path}: line {iline + 1} continues a piecewise reaction but no reaction precedes it"
                )
            reaction = inherit_from(previous, reaction)

        if not reaction.is_valid:
            log.debug("line %d dropped: %d losses, %d sources", iline + 1, reaction.n_losses, reaction.n_sources)
            continue

        _check_range(reaction, path)

        if verbose >= 3:
            log.debug("%s", format_reaction(reaction))

        reactions.append(reaction)
        previous = reaction

    log.info("Loaded %d reactions from %s", len(reactions), path)

    return ReactionTable(
        path=path,
        headers=headers,
        rows=tuple(tuple(r) for r in rows),
        reactions=tuple(reactions),
    )
