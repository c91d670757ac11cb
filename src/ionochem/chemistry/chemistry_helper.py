from numba import njit, prange
import numpy as np

@njit(parallel=True, cache=True)
def compute_rate_coefficient(rate, numerator, exponent, denominator, denominator_floor):
    """
    Temperature dependent rate coefficient k = rate * (numerator / T)^exponent,
    T being the denominator field floored at denominator_floor.
    """
    k = np.empty_like(denominator)
    Nx, Ny, Nz = denominator.shape

    for i in prange(Nx):
        for j in range(Ny):
            for l in range(Nz):
                T = denominator[i, j, l]
                if T < denominator_floor:
                    T = denominator_floor
                k[i, j, l] = rate * (numerator / T) ** exponent

    return k


@njit(parallel=True, cache=True)
def apply_piecewise_range(flux, var, vmin, vmax):
    """
    Zero the flux (in place) wherever var lies outside [vmin, vmax].
    """
    Nx, Ny, Nz = flux.shape

    for i in prange(Nx):
        for j in range(Ny):
            for l in range(Nz):
                v = var[i, j, l]
                if v < vmin or v > vmax:
                    flux[i, j, l] = 0.0


@njit(parallel=True, cache=True)
def solve_chemistry_implicit(density, sources, losses, dt, density_floor):
    """
    Backward-Euler update of one species:

        n_new = (n + S*dt) / (1 + (L / max(n, floor)) * dt)

    L is a removal rate [m^-3/s], so L/n is the loss frequency. The result is
    clamped to density_floor. Unconditionally stable and never negative.
    """
    n_new = np.empty_like(density)
    Nx, Ny, Nz = density.shape

    for i in prange(Nx):
        for j in range(Ny):
            for l in range(Nz):
                n = density[i, j, l]
                n_ref = n
                if n_ref < density_floor:
                    n_ref = density_floor
                value = (n + sources[i, j, l] * dt) / (1.0 + losses[i, j, l] / n_ref * dt)
                if value < density_floor:
                    value = density_floor
                n_new[i, j, l] = value

    return n_new
