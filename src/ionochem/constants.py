# Floors used inside per-cell kernels
density_floor = 1.0e-10      # m^-3
temperature_floor = 1.0      # K

# Reaction table layout
n_header_rows = 2            # column names + units row
max_species_per_side = 3

electron_name = "e-"
