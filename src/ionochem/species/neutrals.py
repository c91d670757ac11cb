from ionochem.grid.grid import Grid

class NeutralContainer:
    """
    Neutral species densities plus the transient chemistry fields
    (sources, losses) and the externally supplied ionization rates.
    """
    def __init__(self, grid: Grid, species_list, Tn0=200.0):

        self.grid = grid
        self.str_species_list = list(species_list)
        self.n_species = len(self.str_species_list)

        if len(set(self.str_species_list)) != self.n_species:
            raise ValueError(f"Duplicate neutral species in {self.str_species_list}")

        self.list_density_grid = [grid.zeros() for _ in self.str_species_list]      # [m^-3]
        self.list_sources_grid = [grid.zeros() for _ in self.str_species_list]      # [m^-3/s]
        self.list_losses_grid = [grid.zeros() for _ in self.str_species_list]       # [m^-3/s]
        self.list_ionization_grid = [grid.zeros() for _ in self.str_species_list]   # [m^-3/s]

        self.temperature_grid = grid.full(Tn0) # [K]

    def get_species_id(self, name):
        """Index of `name`, or -1 if this container does not hold it."""
        try:
            return self.str_species_list.index(name)
        except ValueError:
            return -1

    def initialize_density(self, name, value):
        idx = self.str_species_list.index(name)
        self.list_density_grid[idx][:, :, :] = value

    def density(self, name):
        return self.list_density_grid[self.str_species_list.index(name)]
