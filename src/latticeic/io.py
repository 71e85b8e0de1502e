import numpy as np
import h5py
import mpi4py.MPI as mpi
import json
import traceback
from latticeic import logger
from .model import DICT_MODELS


class Params:
    def __init__(self, json_file='input.json'):
        if json_file is None:
            self._read_params({})
        else:
            self._load_json(json_file)
        self._check_compatibility()

    def __repr__(self):
        return f"<Params {self.__dict__}>"

    def _load_json(self, json_file):
        """Load JSON file and set attributes."""
        try:
            with open(json_file, 'r') as file:
                data = json.load(file)
            self._read_params(data)
        except Exception as e:
            raise ValueError(f"Error reading JSON file {json_file}: {e}")

    def _read_params(self, data):
        defaults = {
            'N': 64,
            'box_length': 10.0,
            'reference_length': 1.0,
            'rescale_A': 1.0,
            'rescale_B': 1.0,
            'adot': 0.0,
            'model': 'phi4_coupled',
            'mphi': 1.0,
            'mchi': 0.0,
            'lambda_phi': 0.0,
            'gsq': 0.0,
            'phi0': 0.0,
            'chi0': 0.0,
            'enable_chi': False,
            'k_cutoff': 0.0,
            'seed': None,
            'check_symmetry': True,
            'verbose': False,
            'write_data': False,
            'file_name': 'initial_conditions',
            'write_mode': 'w',
            'write_spectra': True,
            'fft_plan': 'FFTW_MEASURE',
            'decomposition': 'slab',
        }

        for key, default in defaults.items():
            setattr(self, key, data.get(key, default))

    def _check_compatibility(self):
        """Check compatibility between related parameters."""
        if self.model not in DICT_MODELS:
            raise ValueError(f"Invalid model '{self.model}'. Options are {list(DICT_MODELS)}.")
        if self.k_cutoff < 0:
            raise ValueError("k_cutoff must be non-negative (0 disables the cutoff).")

    @property
    def total_gridpoints(self) -> int:
        return int(self.N)**3

    def print(self):
        """Print the parameters in a human-readable format."""
        import pprint
        pprint.pprint(self.__dict__)

    def update(self, params):
        """Update parameters from a dictionary."""
        for key, value in params.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Invalid parameter: {key}")
        self._check_compatibility()

    def docs(self):
        """Print documentation for all parameters."""
        docs = {
            "N": "Number of grid points in each dimension; the grid holds N**3 points.",
            "box_length": "Comoving side length of the box in program units.",
            "reference_length": "Length the box length is measured against in the fluctuation amplitude.",
            "rescale_A": "Field rescaling factor between physical and program units.",
            "rescale_B": "Time rescaling factor between physical and program units.",
            "adot": "Conformal expansion rate at the initial time.",
            "model": f"Scalar potential. Options: {list(DICT_MODELS)}.",
            "mphi": "Mass of phi.",
            "mchi": "Mass of chi.",
            "lambda_phi": "Quartic self-coupling of phi.",
            "gsq": "Coupling g^2 of the phi^2 chi^2 interaction.",
            "phi0": "Homogeneous background value of phi.",
            "chi0": "Homogeneous background value of chi.",
            "enable_chi": "Initialize the second field chi.",
            "k_cutoff": "Set modes with momentum above k_cutoff to zero; 0 disables the cutoff.",
            "seed": "Seed of the random generator; null draws a fresh one.",
            "check_symmetry": "Verify Hermitian symmetry of every generated spectrum.",
            "verbose": "Enable or disable verbose output.",
            "write_data": "Write the initial conditions to file.",
            "file_name": "Name of the output file.",
            "write_mode": "Write mode for the output file.",
            "write_spectra": "Also write the power spectrum of every field.",
            "fft_plan": "FFT plan for the FFTW library.",
            "decomposition": "Decomposition strategy for parallelization."
        }
        for key, doc in docs.items():
            print(f"{key}: {doc}")


class HDF5Writer:
    """
    Writes real-space initial data to an HDF5 file.

    Every field becomes a dataset of global shape (N, N, N) to which each rank
    writes its local slice. Power spectra go to the group 'spectra'.
    """

    def __init__(
        self,
        mpi_comm: mpi.Comm,
        mpi_rank: int,
        mpi_size: int,
        params,
        fields: list = []
    ):
        self.mpi_comm = mpi_comm
        self.mpi_rank = mpi_rank
        self.mpi_size = mpi_size
        self.file_name = params.file_name
        if not self.file_name.endswith(".h5"):
            self.file_name += ".h5"
        self.mode = params.write_mode
        self.params = params
        self.fields = fields

    def _open(self):
        if self.mpi_size > 1:
            return h5py.File(self.file_name, self.mode, driver='mpio', comm=self.mpi_comm)
        return h5py.File(self.file_name, self.mode)

    def write(self, attrs: dict = {}, spectra: dict = {}):
        """
        Parameters
        ----------
        attrs : dict
            Extra file attributes, e.g. the seed actually used.
        spectra : dict
            Maps a field name to a (k, power) tuple.
        """
        try:
            with self._open() as f:
                for key, value in self._scalar_params().items():
                    f.attrs[key] = value
                for key, value in attrs.items():
                    f.attrs[key] = value

                for field in self.fields:
                    dset = f.create_dataset(field.name, shape=field.space.shape_physical, dtype=np.float64)
                    dset[field.local_slice_physical] = np.asarray(field.real)

                if spectra:
                    grp = f.create_group("spectra")
                    k = next(iter(spectra.values()))[0]
                    datasets = [(grp.create_dataset("k", shape=k.shape, dtype=np.float64), k)]
                    for name, (_, power) in spectra.items():
                        datasets.append((grp.create_dataset(name, shape=power.shape, dtype=np.float64), power))

                    # dataset creation is collective, the data is identical on all ranks
                    if self.mpi_rank == 0:
                        for dset, data in datasets:
                            dset[:] = data

        except Exception as e:
            logger.error(f"[Rank {self.mpi_rank}] HDF5Writer.write: {e}\n{traceback.format_exc()}")
            raise

        if self.mpi_rank == 0:
            logger.info(f"HDF5Writer.write: Initial conditions written to '{self.file_name}'.")

    def _scalar_params(self):
        return {
            key: value for key, value in self.params.__dict__.items()
            if isinstance(value, (bool, int, float, str))
        }
