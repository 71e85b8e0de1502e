"""
Sampling of vacuum fluctuations in frequency space.

Every mode of the half spectrum (global shape (N, N, N//2 + 1), last axis
real-to-complex) gets the amplitudes

    f    = A / sqrt(2 * omega_k) * z
    fdot = A * sqrt(omega_k / 2) * z,      omega_k = sqrt(k**2 + m_eff**2)

from one unit complex Gaussian z. On the planes pz = 0 and pz = N/2 (even N)
the half spectrum still holds both members of a conjugate pair; those are
written together from one draw so the inverse transform is a real field.
"""

import numpy as np
import numba as nb
from .exceptions import SymmetryViolation


def fluctuation_amplitude(
    rescale_A: float,
    rescale_B: float,
    total_gridpoints: int,
    box_length: float,
    reference_length: float
) -> float:
    """
    Normalization of the mode amplitudes in program units.

    Folds the unnormalized inverse FFT (total_gridpoints), the field and time
    rescalings and the box volume (per-mode variance scales as 1/volume) into
    one constant.
    """
    return rescale_A * rescale_B * total_gridpoints / ((box_length / reference_length)**1.5 * np.sqrt(2.0))


def on_hermitian_plane(pz: int, N: int) -> bool:
    return pz == 0 or (N % 2 == 0 and pz == N // 2)


def is_self_conjugate(px: int, py: int, pz: int, N: int) -> bool:
    """True if the mode (px, py, pz) is its own Fourier conjugate on an N**3 grid."""
    return (-px) % N == px % N and (-py) % N == py % N and on_hermitian_plane(pz, N)


def linear_index(px: int, py: int, pz: int, N: int) -> int:
    """Flat C-order index of (px, py, pz) in a (N, N, N//2 + 1) array."""
    return pz + (N // 2 + 1) * (py % N + N * (px % N))


def conjugate_index(px: int, py: int, pz: int, N: int):
    """Flat index of the conjugate partner, or None if the partner is not stored in the half spectrum."""
    if not on_hermitian_plane(pz, N):
        return None
    return linear_index(-px, -py, pz, N)


def draw_unit_modes(rng: np.random.Generator, shape: tuple):
    """
    Draw the real and imaginary parts of the unit fluctuations.

    The order is fixed: all real parts first, then all imaginary parts, each
    in C order over the global half spectrum.
    """
    re = rng.standard_normal(shape)
    im = rng.standard_normal(shape)
    return re, im


@nb.njit
def _mode_amplitudes(k2, m2_eff, amplitude, zr, zi):
    omega2 = k2 + m2_eff
    if not omega2 > 0.0:
        return 0j, 0j, False

    omega = np.sqrt(omega2)
    z = complex(zr, zi)
    return amplitude / np.sqrt(2.0 * omega) * z, amplitude * np.sqrt(0.5 * omega) * z, True


@nb.njit
def _set_mode(f_flat, fdot_flat, idx, idx_conj, k2, m2_eff, amplitude, zr, zi):
    f, fdot, stable = _mode_amplitudes(k2, m2_eff, amplitude, zr, zi)

    f_flat[idx] = f
    fdot_flat[idx] = fdot
    if idx_conj >= 0 and idx_conj != idx:
        f_flat[idx_conj] = f.conjugate()
        fdot_flat[idx_conj] = fdot.conjugate()

    return stable


@nb.njit(parallel=True)
def _sweep(f_hat, fdot_hat, re, im, dk, m2_eff, amplitude, k_cutoff):
    nx, ny, nz = f_hat.shape
    n = nx
    z_top = nz - 1 if n % 2 == 0 else -1
    kc2 = k_cutoff * k_cutoff

    f_flat = f_hat.reshape(-1)
    fdot_flat = fdot_hat.reshape(-1)

    n_unstable = 0
    for x in nb.prange(nx):
        px = x if x <= n // 2 else x - n
        xc = (n - x) % n
        for y in range(ny):
            py = y if y <= n // 2 else y - n
            yc = (n - y) % n
            for z in range(nz):
                idx = z + nz * (y + ny * x)
                idx_conj = -1
                zr = re[x, y, z]
                zi = im[x, y, z]

                if z == 0 or z == z_top:
                    # the pair belongs to the lexicographically smaller (x, y)
                    if xc < x or (xc == x and yc < y):
                        continue
                    if xc == x and yc == y:
                        zi = 0.0
                    else:
                        idx_conj = z + nz * (yc + ny * xc)

                k2 = dk * dk * (px * px + py * py + z * z)
                if kc2 > 0.0 and k2 > kc2:
                    zr = 0.0
                    zi = 0.0

                if not _set_mode(f_flat, fdot_flat, idx, idx_conj, k2, m2_eff, amplitude, zr, zi):
                    n_unstable += 1

    return n_unstable


@nb.njit
def _hermitian_violations(a):
    nx, ny, nz = a.shape
    n = nx

    count = 0
    for z in range(nz):
        if not (z == 0 or (n % 2 == 0 and z == n // 2)):
            continue
        for x in range(nx):
            xc = (n - x) % n
            for y in range(ny):
                yc = (n - y) % n
                if xc == x and yc == y:
                    if a[x, y, z].imag != 0.0:
                        count += 1
                elif a[xc, yc, z] != a[x, y, z].conjugate():
                    count += 1

    return count


def hermitian_violations(a: np.ndarray) -> int:
    """Number of entries of a global half spectrum that break Hermitian symmetry."""
    return int(_hermitian_violations(a))


class ModeSampler:
    """
    Writes vacuum fluctuation amplitudes into global half-spectrum buffers.

    Parameters
    ----------
    N : int
        Number of grid points in each direction.
    box_length : float
        Comoving side length of the box.
    amplitude : float
        Fluctuation amplitude, see `fluctuation_amplitude`.
    k_cutoff : float, optional
        Modes with physical momentum above k_cutoff are set to zero. 0 disables the cutoff.
    """

    def __init__(self, N: int, box_length: float, amplitude: float, k_cutoff: float = 0.0):
        self.N = N
        self.dk = 2 * np.pi / box_length
        self.amplitude = amplitude
        self.k_cutoff = k_cutoff
        self.shape = (N, N, N // 2 + 1)

    def momentum_squared(self, px: int, py: int, pz: int) -> float:
        return self.dk**2 * (px**2 + py**2 + pz**2)

    def omega(self, px: int, py: int, pz: int, m2_eff: float) -> float:
        """Dispersion relation; nan where the mode is tachyonic."""
        omega2 = self.momentum_squared(px, py, pz) + m2_eff
        return np.sqrt(omega2) if omega2 > 0 else np.nan

    def set_mode(
        self,
        f_hat: np.ndarray,
        fdot_hat: np.ndarray,
        px: int,
        py: int,
        pz: int,
        idx: int,
        m2_eff: float,
        self_conjugate: bool,
        unit: complex
    ) -> bool:
        """
        Write the amplitudes of a single mode, and of its conjugate partner if it is stored.

        Returns False if the mode fell back to zero fluctuation.
        """
        self._check_buffers(f_hat, fdot_hat)
        if bool(self_conjugate) != is_self_conjugate(px, py, pz, self.N):
            raise SymmetryViolation(
                f"ModeSampler.set_mode: Mode ({px}, {py}, {pz}) passed with self_conjugate={self_conjugate}."
            )

        zr = unit.real
        zi = 0.0 if self_conjugate else unit.imag

        k2 = self.momentum_squared(px, py, pz)
        if self.k_cutoff > 0 and k2 > self.k_cutoff**2:
            zr = zi = 0.0

        idx_conj = None if self_conjugate else conjugate_index(px, py, pz, self.N)
        if idx_conj is None:
            idx_conj = -1

        return bool(_set_mode(
            f_hat.reshape(-1), fdot_hat.reshape(-1), idx, idx_conj, k2, m2_eff, self.amplitude, zr, zi
        ))

    def sweep(
        self,
        f_hat: np.ndarray,
        fdot_hat: np.ndarray,
        m2_eff: float,
        re: np.ndarray,
        im: np.ndarray
    ) -> int:
        """
        Fill both buffers for every mode of the half spectrum.

        Returns the number of modes (conjugate pairs counted once) that fell back to zero fluctuation.
        """
        self._check_buffers(f_hat, fdot_hat)
        if re.shape != self.shape or im.shape != self.shape:
            raise ValueError(f"ModeSampler.sweep: Expected random draws of shape {self.shape}.")

        return int(_sweep(f_hat, fdot_hat, re, im, self.dk, float(m2_eff), self.amplitude, float(self.k_cutoff)))

    def _check_buffers(self, f_hat, fdot_hat):
        for buf in (f_hat, fdot_hat):
            if buf.shape != self.shape:
                raise ValueError(f"ModeSampler: Invalid buffer shape. Expected {self.shape}, got {buf.shape}.")
            if buf.dtype != np.complex128 or not buf.flags.c_contiguous:
                raise ValueError("ModeSampler: Buffers must be C-contiguous complex128 arrays.")
