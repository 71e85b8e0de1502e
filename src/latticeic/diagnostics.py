import numpy as np
import numba as nb
import mpi4py.MPI as mpi
from .field import Field


@nb.njit
def _bin_power(power, counts, f_hat, n0, n1, n2, z_top):
    shape = f_hat.shape

    for i in range(shape[0]):
        for j in range(shape[1]):
            for l in range(shape[2]):
                kx, ky, kz = n0[i, j, l], n1[i, j, l], n2[i, j, l]
                # modes off the Hermitian planes stand for themselves and their conjugate
                weight = 1.0 if (kz == 0 or kz == z_top) else 2.0
                b = int(np.sqrt(kx * kx + ky * ky + kz * kz) + 0.5)
                f = f_hat[i, j, l]
                power[b] += weight * (f.real * f.real + f.imag * f.imag)
                counts[b] += weight


def power_spectrum(field: Field):
    """
    Shell-averaged power spectrum <|f_k|^2> of a field's frequency-space buffer.

    Shells have unit width in integer wavenumber. Returns the physical shell
    momenta and the mean power per shell (0 for empty shells).
    """
    space = field.space
    N = space.N
    n_bins = int(np.sqrt(3) * (N // 2)) + 2
    z_top = N // 2 if N % 2 == 0 else -1

    power = np.zeros(n_bins)
    counts = np.zeros(n_bins)
    n0, n1, n2 = (np.ascontiguousarray(ni, dtype=np.float64) for ni in space.n_k)
    _bin_power(power, counts, np.asarray(field.freq), n0, n1, n2, float(z_top))

    space.comm.Allreduce(mpi.IN_PLACE, power, op=mpi.SUM)
    space.comm.Allreduce(mpi.IN_PLACE, counts, op=mpi.SUM)

    k = space.dk * np.arange(n_bins)
    power = np.divide(power, counts, out=np.zeros_like(power), where=counts > 0)
    return k, power


def field_statistics(field: Field):
    """Mean and variance of the real-space buffer over the whole grid."""
    comm = field.space.comm
    u = np.asarray(field.real)
    n_total = field.space.N**3

    mean = comm.allreduce(u.sum(), op=mpi.SUM) / n_total
    var = comm.allreduce(((u - mean)**2).sum(), op=mpi.SUM) / n_total
    return mean, var
