import argparse
import mpi4py.MPI as mpi
from latticeic.io import Params
from latticeic.simulation import VacuumInitialConditions
from latticeic import logger


def parser_args(comm, rank):
    args = None
    try:
        if rank == 0:
            logger.info(f"Parsing arguments.")
            parser = argparse.ArgumentParser()
            parser.add_argument("input", nargs="?", default="input.json", help="Parameter file", type=str)
            args = parser.parse_args()
    except Exception as e:
        logger.error(f"[Rank {rank}] Error parsing arguments: {e}")
        comm.Abort(1)

    return comm.bcast(args, root=0)


if __name__ == '__main__':
    """
    This script sets vacuum fluctuations of phi and chi in a lambda phi^4 + g^2 phi^2 chi^2 model
    and writes them to 'initial_conditions.h5'.

    To run the case, do
        ```bash
        mpirun -np <nprocs> python main.py input.json
        ```
    """
    comm = mpi.COMM_WORLD
    rank = comm.Get_rank()

    args = parser_args(comm, rank)
    params = Params(args.input) if rank == 0 else None

    ic = VacuumInitialConditions(params)
    ic.run()
