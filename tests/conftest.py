import pytest
import mpi4py.MPI as mpi
from latticeic.io import Params
from latticeic.basis import FourierSpace
from latticeic.field import FieldPair


@pytest.fixture
def params():
    """Small free-field configuration: 4^3 grid points in a unit box."""
    p = Params(None)
    p.update({
        'N': 4,
        'box_length': 1.0,
        'model': 'quadratic',
        'mphi': 1.0,
        'mchi': 2.0,
        'seed': 1234,
        'fft_plan': 'FFTW_ESTIMATE',
    })
    return p


@pytest.fixture
def make_space():
    comm = mpi.COMM_WORLD

    def _make(params):
        return FourierSpace(
            comm,
            comm.Get_rank(),
            params.N,
            box_length=params.box_length,
            fft_plan=params.fft_plan,
            decomposition=params.decomposition
        )
    return _make


@pytest.fixture
def make_pairs(make_space):
    """Returns (phi, chi) field pairs on a fresh space; chi is None unless requested."""

    def _make(params, with_chi=False):
        space = make_space(params)
        phi = FieldPair.create(space, 'phi')
        chi = FieldPair.create(space, 'chi') if with_chi else None
        return phi, chi
    return _make
