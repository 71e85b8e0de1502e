from enum import Enum
from typing import Optional
import numpy as np
from .exceptions import InvalidConfiguration, SymmetryViolation
from .field import FieldPair
from .model import DICT_MODELS
from .sampler import ModeSampler, fluctuation_amplitude, draw_unit_modes, hermitian_violations
from latticeic import logger


class InitializerState(Enum):
    UNINITIALIZED = 0
    INITIALIZING = 1
    INITIALIZED = 2


class FluctuationInitializer:
    """
    Sets vacuum fluctuations as the initial conditions of phi (and optionally chi).

    Modes are sampled on the global half spectrum with the same random stream on
    every rank, so the result does not depend on the MPI decomposition; each
    rank keeps its local slice and transforms it to real space.

    Parameters
    ----------
    params : Params
        Simulation parameters.
    phi : FieldPair
        The primary field and its time derivative.
    chi : FieldPair, optional
        The second field and its time derivative. Required if params.enable_chi is set.
    rng : np.random.Generator, optional
        Random generator. Default is np.random.default_rng(params.seed).
    """

    def __init__(
        self,
        params,
        phi: FieldPair,
        chi: Optional[FieldPair] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self._check_configuration(params, phi, chi)

        self.params = params
        self.phi = phi
        self.chi = chi
        self.adot = params.adot
        self.model = DICT_MODELS[params.model](params)
        self.rng = rng if rng is not None else np.random.default_rng(params.seed)
        self.mpi_rank = phi.value.space.mpi_rank

        self.fluctuation_amplitude = fluctuation_amplitude(
            params.rescale_A,
            params.rescale_B,
            params.total_gridpoints,
            params.box_length,
            params.reference_length
        )
        if not (np.isfinite(self.fluctuation_amplitude) and self.fluctuation_amplitude > 0):
            raise InvalidConfiguration(f"Fluctuation amplitude {self.fluctuation_amplitude} is not positive and finite.")

        self.sampler = ModeSampler(params.N, params.box_length, self.fluctuation_amplitude, params.k_cutoff)
        self.state = InitializerState.UNINITIALIZED

    @staticmethod
    def _check_configuration(params, phi, chi):
        positive = {
            'N': params.N,
            'box_length': params.box_length,
            'reference_length': params.reference_length,
            'rescale_A': params.rescale_A,
            'rescale_B': params.rescale_B,
        }
        for key, value in positive.items():
            if not (np.isfinite(value) and value > 0):
                raise InvalidConfiguration(f"'{key}' must be positive and finite, got {value}.")
        if params.N < 2:
            raise InvalidConfiguration(f"N must be at least 2, got {params.N}.")
        if not np.isfinite(params.adot):
            raise InvalidConfiguration(f"'adot' must be finite, got {params.adot}.")

        if params.enable_chi and chi is None:
            raise InvalidConfiguration("enable_chi is set but no chi fields were given.")

        for pair in (phi, chi):
            if pair is None:
                continue
            for field in (pair.value, pair.derivative):
                if field.space.N != params.N or not np.isclose(field.space.box_length, params.box_length):
                    raise InvalidConfiguration(
                        f"Field '{field.name}' lives on a {field.space.N}^3 grid of side {field.space.box_length}, "
                        f"expected {params.N}^3 and {params.box_length}."
                    )

    def field_pairs(self):
        pairs = [('phi', self.phi)]
        if self.chi is not None:
            pairs.append(('chi', self.chi))
        return pairs

    def initialize(self):
        """Fill the frequency- and real-space buffers of every field pair."""
        if self.state is InitializerState.INITIALIZED and self.mpi_rank == 0:
            logger.warning("FluctuationInitializer: Fields are already initialized, drawing new fluctuations.")

        self.state = InitializerState.INITIALIZING
        if self.mpi_rank == 0:
            logger.info(f"FluctuationInitializer: fluctuation amplitude = {self.fluctuation_amplitude:.6e}")

        for name, pair in self.field_pairs():
            m2_eff = self.model.effective_mass_squared(name, self.adot)
            if self.mpi_rank == 0:
                logger.info(f"FluctuationInitializer: effective mass squared of {name} = {m2_eff:.6e}")
                if m2_eff < 0:
                    logger.warning(f"FluctuationInitializer: Effective mass squared of {name} is negative.")
            self.initialize_field(pair.value, pair.derivative, m2_eff)

        self.state = InitializerState.INITIALIZED

    def initialize_field(self, field, field_derivative, effective_mass_squared: float) -> int:
        """
        Sample the vacuum fluctuations of one field and its derivative, then transform both to real space.

        Returns the number of modes set to zero because their frequency is not real.
        """
        shape = self.sampler.shape
        re, im = draw_unit_modes(self.rng, shape)

        f_hat = np.zeros(shape, dtype=np.complex128)
        fdot_hat = np.zeros(shape, dtype=np.complex128)
        n_unstable = self.sampler.sweep(f_hat, fdot_hat, effective_mass_squared, re, im)

        if self.params.check_symmetry:
            for name, a in ((field.name, f_hat), (field_derivative.name, fdot_hat)):
                n_bad = hermitian_violations(a)
                if n_bad:
                    raise SymmetryViolation(f"{n_bad} entries of the spectrum of '{name}' break Hermitian symmetry.")

        field.scatter(f_hat)
        field_derivative.scatter(fdot_hat)
        field.transform_to_real_space()
        field_derivative.transform_to_real_space()

        if n_unstable and self.mpi_rank == 0:
            logger.warning(
                f"FluctuationInitializer: {n_unstable} modes of {field.name} have imaginary frequency "
                f"and were set to zero."
            )

        return n_unstable
