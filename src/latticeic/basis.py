import numpy as np
import mpi4py.MPI as mpi

try:
    import shenfun as sf
except ImportError:
    raise ImportError("This module requires shenfun to be installed.")


class FourierSpace:
    """
    This class sets up the Fourier space of a periodic cubic box.

    Parameters
    ----------
    comm : mpi.Comm
        MPI communicator.
    mpi_rank : int
        MPI rank.
    N : int
        Number of grid points in each direction.
    box_length : float, optional
        Comoving side length of the box. Default is 2*pi.
    fft_plan : str, optional
        FFT planner effort. Default is 'FFTW_MEASURE'. Choices are 'FFTW_ESTIMATE', 'FFTW_MEASURE', 'FFTW_PATIENT', 'FFTW_EXHAUSTIVE'.
    decomposition : str, optional
        Parallel decomposition strategy. Options are 'slab' or 'pencil'. Default is 'slab'.

    Notes
    -----
    The last axis is the real-to-complex axis, so the global shape of a
    frequency-space array is (N, N, N//2 + 1).
    """

    def __init__(
        self,
        comm: mpi.Comm,
        mpi_rank: int,
        N: int,
        box_length: float = 2 * np.pi,
        fft_plan: str = 'FFTW_MEASURE',
        decomposition: str = 'slab'
    ):
        if decomposition not in ('slab', 'pencil'):
            raise ValueError(f"FourierSpace: Invalid decomposition: {decomposition}.")

        self.comm = comm
        self.mpi_rank = mpi_rank
        self.N = int(N)
        self.dim = 3
        self.box_length = float(box_length)
        self.domain = [(0.0, self.box_length) for _ in range(self.dim)]

        dtype = [np.float64 if i == self.dim - 1 else np.complex128 for i in range(self.dim)]
        F = [sf.FunctionSpace(self.N, 'F', domain=self.domain[i], dtype=dtype[i]) for i in range(self.dim)]
        S = sf.TensorProductSpace(comm, F, dtype=np.float64, slab=(decomposition == 'slab'), planner_effort=fft_plan)

        self.S = S

        # integer wavenumbers of the local part of the spectrum
        self.n_k = np.array(S.local_wavenumbers(scaled=False, broadcast=True))

        self.dk = 2 * np.pi / self.box_length
        self.shape_physical = (self.N,) * self.dim
        self.shape_fourier = (self.N, self.N, self.N // 2 + 1)
