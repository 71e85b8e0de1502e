from dataclasses import dataclass
import numpy as np
from .basis import FourierSpace

try:
    import shenfun as sf
except ImportError:
    raise ImportError('shenfun is required for this module')


class Field:
    """
    A scalar quantity on the lattice with a real-space and a frequency-space buffer.

    Parameters
    ----------
    space : FourierSpace
        The Fourier space the buffers live in.
    name : str
        Name of the field, used for logging and output.
    """

    def __init__(self, space: FourierSpace, name: str):
        self.space = space
        self.name = name

        self.real = sf.Array(space.S)
        self.freq = sf.Function(space.S)

        self.local_slice_physical = self.real.local_slice()
        self.local_slice_fourier = self.freq.local_slice()

    def __repr__(self):
        return f"<Field {self.name} N={self.space.N}>"

    def get_real_buffer(self) -> np.ndarray:
        return self.real

    def get_frequency_buffer(self) -> np.ndarray:
        return self.freq

    def transform_to_real_space(self):
        """Inverse transform: overwrite the real-space buffer from the frequency-space buffer."""
        self.real = self.space.S.backward(self.freq, self.real)

    def transform_to_frequency_space(self):
        """Forward transform: overwrite the frequency-space buffer from the real-space buffer."""
        self.freq = self.space.S.forward(self.real, self.freq)

    def scatter(self, global_hat: np.ndarray):
        """Copy the rank-local part of a global frequency-space array into the buffer."""
        self.freq[:] = global_hat[self.local_slice_fourier]


@dataclass
class FieldPair:
    """A field and its time derivative, initialized from the same random draw."""
    value: Field
    derivative: Field

    @classmethod
    def create(cls, space: FourierSpace, name: str):
        return cls(Field(space, name), Field(space, name + 'dot'))

    @property
    def name(self) -> str:
        return self.value.name
