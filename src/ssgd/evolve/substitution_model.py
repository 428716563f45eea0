"""The HKY85 nucleotide substitution model"""

import json

import numpy

from ssgd._version import __version__
from ssgd.core.alphabet import CANONICAL, complement_in_class, is_transition
from ssgd.evolve.integrator_numba import calc_hky_p
from ssgd.util.misc import get_object_provenance


def _validated_freqs(freqs, tolerance=1e-6):
    if hasattr(freqs, "items"):
        freqs = [freqs[b] for b in CANONICAL]
    freqs = numpy.array(freqs, dtype=float).ravel()
    if freqs.shape != (4,):
        raise ValueError(f"4 base frequencies required, not {freqs.shape[0]}")
    if not (freqs > 0).all():
        raise ValueError(f"base frequencies must all be > 0, not {freqs}")
    total = freqs.sum()
    if abs(total - 1) > tolerance:
        raise ValueError(f"base frequencies must sum to 1, not {total}")
    return freqs / total


class HKY85:
    """Hasegawa, Kishino and Yano 1985 model

    Parameters
    ----------
    kappa
        transition / transversion rate ratio, > 0
    freqs
        stationary frequencies of A, C, G, T. Defaults to equal frequencies.

    Notes
    -----
    The generator is scaled by beta so the expected substitution rate is 1.
    """

    def __init__(self, kappa=1.0, freqs=None):
        self._kappa = None
        self._freqs = None
        self.kappa = kappa
        self.freqs = numpy.full(4, 0.25) if freqs is None else freqs

    def __repr__(self):
        freqs = ", ".join(f"{f:.4f}" for f in self._freqs)
        return f"{self.__class__.__name__}(kappa={self._kappa:.4g}, freqs=[{freqs}])"

    @property
    def kappa(self):
        return self._kappa

    @kappa.setter
    def kappa(self, value):
        value = float(value)
        if not (numpy.isfinite(value) and value > 0):
            raise ValueError(f"kappa must be > 0, not {value}")
        self._kappa = value

    @property
    def freqs(self):
        return self._freqs.copy()

    @freqs.setter
    def freqs(self, value):
        self._freqs = _validated_freqs(value)

    @property
    def freq_purines(self):
        return self._freqs[0] + self._freqs[2]

    @property
    def freq_pyrimidines(self):
        return self._freqs[1] + self._freqs[3]

    @property
    def beta(self):
        """normalising constant of the generator"""
        fA, fC, fG, fT = self._freqs
        return 1.0 / (
            2
            * (
                self.freq_purines * self.freq_pyrimidines
                + self._kappa * (fA * fG + fC * fT)
            )
        )

    is_transition = staticmethod(is_transition)
    complement_in_class = staticmethod(complement_in_class)

    def rate_matrix(self):
        """the normalised instantaneous rate matrix, rows sum to 0"""
        result = numpy.empty((4, 4))
        for i in range(4):
            for j in range(4):
                rate = self._kappa if is_transition(i, j) else 1.0
                result[i, j] = self.beta * rate * self._freqs[j]
            result[i, i] = 0.0
            result[i, i] = -result[i].sum()
        return result

    def calc_psub(self, distance):
        """substitution probability matrix for the expected number of
        substitutions per site, distance"""
        if distance < 0:
            raise ValueError(f"distance must be >= 0, not {distance}")
        result = numpy.empty((4, 4))
        calc_hky_p(self._freqs, self._kappa, self.beta, float(distance), result)
        return result

    def to_rich_dict(self):
        return {
            "type": get_object_provenance(self),
            "init_args": {"kappa": self._kappa, "freqs": self._freqs.tolist()},
            "version": __version__,
        }

    def to_json(self):
        return json.dumps(self.to_rich_dict())
