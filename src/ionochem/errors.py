class ChemistryError(Exception):
    """Base class for every error raised by ionochem."""


class ResourceError(ChemistryError):
    """The reaction table could not be opened or read."""


class FormatError(ChemistryError):
    """The reaction table is structurally invalid."""


class ParseError(ChemistryError):
    """A cell that must hold a number does not."""

    def __init__(self, row: int, column: str, value: str, path=None, expected: str = "a number"):
        self.row = row
        self.column = column
        self.value = value
        self.path = path
        where = f"{path}: " if path is not None else ""
        super().__init__(f"{where}line {row + 1}, column '{column}': cannot parse {value!r} as {expected}")


class UnresolvedSpeciesError(ChemistryError, KeyError):
    """A species name is unknown to both the neutral and the ion containers."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class MissingFieldError(ChemistryError, KeyError):
    """A reaction refers to a grid field the caller did not supply."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class ConfigurationError(ChemistryError, ValueError):
    """Invalid configuration value."""
