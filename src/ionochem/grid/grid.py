import numpy as np

class Grid:
    """
    3D cell grid (lon, lat, alt) as seen by the chemistry.
    Coordinates are built elsewhere; only the cell counts matter here.
    """

    def __init__(self, n_lons: int, n_lats: int, n_alts: int):
        self.n_lons = int(n_lons)
        self.n_lats = int(n_lats)
        self.n_alts = int(n_alts)
        if min(self.n_lons, self.n_lats, self.n_alts) < 1:
            raise ValueError(f"Grid dimensions must be >= 1, got {self.shape}")

    @property
    def shape(self):
        return (self.n_lons, self.n_lats, self.n_alts)

    def zeros(self) -> np.ndarray:
        return np.zeros(self.shape, dtype=np.float64)

    def full(self, value) -> np.ndarray:
        return np.full(self.shape, value, dtype=np.float64)

    def check_field(self, field: np.ndarray, name: str = "field") -> None:
        if np.shape(field) != self.shape:
            raise ValueError(f"{name} has shape {np.shape(field)}, grid is {self.shape}")
