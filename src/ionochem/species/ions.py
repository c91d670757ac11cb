from ionochem import constants
from ionochem.grid.grid import Grid

class IonContainer:
    """
    Singly charged ion species plus electrons.

    Electrons occupy the slot right after the last ion (id == n_ions) so that
    reactions can name them like any other ion-kind species. Their density is
    never integrated; fill_electrons() derives it from the ions.
    """
    def __init__(self, grid: Grid, species_list, Ti0=200.0, Te0=200.0):

        self.grid = grid
        self.str_species_list = list(species_list)
        self.n_ions = len(self.str_species_list)

        if constants.electron_name in self.str_species_list:
            raise ValueError(f"'{constants.electron_name}' is implicit, do not list it as an ion")
        if len(set(self.str_species_list)) != self.n_ions:
            raise ValueError(f"Duplicate ion species in {self.str_species_list}")

        self.electron_id = self.n_ions
        n_slots = self.n_ions + 1

        self.list_density_grid = [grid.zeros() for _ in range(n_slots)]      # [m^-3]
        self.list_sources_grid = [grid.zeros() for _ in range(n_slots)]      # [m^-3/s]
        self.list_losses_grid = [grid.zeros() for _ in range(n_slots)]       # [m^-3/s]
        self.list_ionization_grid = [grid.zeros() for _ in range(n_slots)]   # [m^-3/s]

        self.Ti_grid = grid.full(Ti0) # [K]
        self.Te_grid = grid.full(Te0) # [K]

    @property
    def ne_grid(self):
        return self.list_density_grid[self.electron_id]

    def names(self):
        return self.str_species_list + [constants.electron_name]

    def get_species_id(self, name):
        """Index of `name` (electrons -> n_ions), or -1 if unknown."""
        if name == constants.electron_name:
            return self.electron_id
        try:
            return self.str_species_list.index(name)
        except ValueError:
            return -1

    def initialize_density(self, name, value):
        idx = self.get_species_id(name)
        if idx < 0:
            raise KeyError(name)
        self.list_density_grid[idx][:, :, :] = value

    def density(self, name):
        idx = self.get_species_id(name)
        if idx < 0:
            raise KeyError(name)
        return self.list_density_grid[idx]

    def fill_electrons(self):
        """
        Charge-neutrality closure: ne = sum of all (singly charged) ion densities.
        """
        ne = self.list_density_grid[self.electron_id]
        ne[:, :, :] = 0.0
        for i in range(self.n_ions):
            ne += self.list_density_grid[i]
        return ne
