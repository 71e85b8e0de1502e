import numpy as np
import mpi4py.MPI as mpi
import traceback
from .io import Params, HDF5Writer
from .basis import FourierSpace
from .field import FieldPair
from .initializer import FluctuationInitializer
from .diagnostics import power_spectrum, field_statistics
from .utils import Timer
from . import logger


class VacuumInitialConditions:
    """
    Sets up the lattice, the fields and the vacuum fluctuations at t = 0.

    Parameters:
    ----------
    params: Params
        Simulation parameters.
    """

    def __init__(self, params: Params):

        self.mpi_comm = mpi.COMM_WORLD
        self.mpi_rank = self.mpi_comm.Get_rank()
        self.mpi_size = self.mpi_comm.Get_size()

        self.params = None
        if self.mpi_rank == 0:
            self.params = params
        self.params = self.mpi_comm.bcast(self.params, root=0)

        seed = self.params.seed
        if seed is None and self.mpi_rank == 0:
            seed = int(np.random.SeedSequence().entropy % 2**63)
        self.seed = self.mpi_comm.bcast(seed, root=0)

        self.space = FourierSpace(
            self.mpi_comm,
            self.mpi_rank,
            self.params.N,
            box_length=self.params.box_length,
            fft_plan=self.params.fft_plan,
            decomposition=self.params.decomposition
        )

        self.phi = FieldPair.create(self.space, 'phi')
        self.chi = FieldPair.create(self.space, 'chi') if self.params.enable_chi else None

        self._init_initializer()
        self._init_writer()
        self._timer = Timer(self.mpi_comm, self.params.verbose)

    def _init_initializer(self):
        try:
            self.initializer = FluctuationInitializer(
                self.params,
                self.phi,
                self.chi,
                rng=np.random.default_rng(self.seed)
            )

        except Exception as e:
            if self.mpi_rank == 0:
                logger.critical(f"Failed to initialize fluctuation initializer: {e}\n{traceback.format_exc()}")
            self.mpi_comm.Abort(1)

    def _init_writer(self):
        self.data_writer = None
        if not self.params.write_data:
            return

        fields = []
        for _, pair in self.initializer.field_pairs():
            fields += [pair.value, pair.derivative]

        self.data_writer = HDF5Writer(
            self.mpi_comm,
            self.mpi_rank,
            self.mpi_size,
            params=self.params,
            fields=fields
        )

    def fields(self):
        fields = {}
        for _, pair in self.initializer.field_pairs():
            fields[pair.value.name] = pair.value
            fields[pair.derivative.name] = pair.derivative
        return fields

    def run(self):
        self.mpi_comm.Barrier()
        self._timer.start()

        if self.mpi_rank == 0:
            logger.info(f"Random seed = {self.seed}")

        try:
            self.initializer.initialize()
        except Exception as e:
            if self.mpi_rank == 0:
                logger.critical(f"Failed to set initial conditions: {e}\n{traceback.format_exc()}")
            self.mpi_comm.Abort(1)
        self._timer("Fluctuations")

        for name, field in self.fields().items():
            mean, var = field_statistics(field)
            if self.mpi_rank == 0:
                logger.info(f"{name}: mean = {mean:.6e}, variance = {var:.6e}")

        if self.data_writer is not None:
            spectra = {}
            if self.params.write_spectra:
                spectra = {name: power_spectrum(field) for name, field in self.fields().items()}
            self.data_writer.write(attrs={'seed': self.seed}, spectra=spectra)
            self._timer("Output")

        self._timer.final()
