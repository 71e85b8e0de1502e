import time
import mpi4py.MPI as mpi
from latticeic import logger


class Timer:
    """Wall-clock time of the set-up stages, averaged over MPI ranks.

    Parameters
    ----------
    comm (MPI.Comm)
        The MPI communicator.
    verbose (bool)
        If True, prints the runtime of every stage.
    """

    def __init__(self, comm: mpi.Comm, verbose: bool = False):
        self.comm = comm
        self.mpi_rank = comm.Get_rank()
        self.mpi_size = comm.Get_size()
        self.verbose = verbose

        self.start_time = self.t0 = time.time()

    def _rank_average(self, seconds: float) -> float:
        return self.comm.allreduce(seconds, op=mpi.SUM) / self.mpi_size

    def __call__(self, stage: str):
        """Report the time spent in `stage`, i.e. since the previous call or `start`."""
        t1 = time.time()
        dt = self._rank_average(t1 - self.t0)
        self.t0 = t1

        if self.verbose and self.mpi_rank == 0:
            logger.info(f"{stage} finished in {dt:.2f} s")

    def start(self):
        self.start_time = self.t0 = time.time()
        if self.mpi_rank == 0:
            logger.info("Initial conditions started")

    def final(self):
        runtime = self._rank_average(time.time() - self.start_time)
        if self.mpi_rank == 0:
            logger.info(f"Initial conditions completed. Total run time: {self.format_time(runtime)}")

    @staticmethod
    def format_time(seconds: float) -> str:
        """Format a duration as hh:mm:ss."""
        minutes, secs = divmod(int(seconds), 60)
        hours, minutes = divmod(minutes, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
