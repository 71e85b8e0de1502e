class InvalidConfiguration(ValueError):
    """Raised when the model configuration cannot produce initial conditions."""


class SymmetryViolation(AssertionError):
    """Raised when a frequency-space buffer is not Hermitian on its self-conjugate planes."""
