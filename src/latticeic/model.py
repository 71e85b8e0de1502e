from abc import ABC, abstractmethod


DICT_MODELS = {}


def register_model(name):
    def decorator(cls):
        DICT_MODELS[name] = cls
        return cls
    return decorator


class Model(ABC):
    """
    Scalar field potential, used for the mass terms of the fluctuations.

    Parameters
    ----------
    params : Params
        Simulation parameters holding the couplings and the homogeneous background values phi0, chi0.
    """

    field_names = ('phi', 'chi')

    def __init__(self, params):
        self.params = params

    @abstractmethod
    def mass_squared(self, field: str) -> float:
        """Second derivative of the potential with respect to `field` at the background values."""

    def effective_mass_squared(self, field: str, adot: float) -> float:
        """
        Mass squared entering the dispersion relation, in program units.

        The -9/4 adot**2 term comes from rescaling the field by the scale factor
        in an expanding background.
        """
        if field not in self.field_names:
            raise ValueError(f"Model: Unknown field '{field}'. Options are {self.field_names}.")
        return self.mass_squared(field) / self.params.rescale_B**2 - 2.25 * adot**2


@register_model('quadratic')
class Quadratic(Model):
    """V = 1/2 mphi^2 phi^2 + 1/2 mchi^2 chi^2"""

    def mass_squared(self, field):
        p = self.params
        return p.mphi**2 if field == 'phi' else p.mchi**2


@register_model('phi4_coupled')
class Phi4Coupled(Model):
    """V = 1/2 mphi^2 phi^2 + 1/4 lambda phi^4 + 1/2 g^2 phi^2 chi^2 + 1/2 mchi^2 chi^2"""

    def mass_squared(self, field):
        p = self.params
        if field == 'phi':
            return p.mphi**2 + 3 * p.lambda_phi * p.phi0**2 + p.gsq * p.chi0**2
        return p.mchi**2 + p.gsq * p.phi0**2
