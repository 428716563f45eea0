"""Discrete site-rate heterogeneity"""

import json

import numpy

from scipy.special import gdtrix

from ssgd._version import __version__
from ssgd.util.misc import get_object_provenance


def gamma_medians(shape, num_categories):
    """divides a gamma distribution with mean 1 into equal probability bins
    and returns their medians, rescaled to have a mean of exactly 1"""
    weights = numpy.full(num_categories, 1.0 / num_categories)
    percentiles = numpy.add.accumulate(weights) - weights * 0.5
    medians = numpy.array([gdtrix(shape, shape, p) for p in percentiles])
    scale = numpy.sum(medians * weights)
    return medians / scale


class SiteRateModel:
    """relative rates and proportions of site classes

    Parameters
    ----------
    num_categories
        number of gamma rate categories
    gamma_shape
        shape of the gamma distribution. Required if num_categories > 1.
    invariant
        proportion of sites with rate 0

    Notes
    -----
    Rates are normalised so the mean rate across all sites is 1.
    """

    def __init__(self, num_categories=1, gamma_shape=None, invariant=0.0):
        num_categories = int(num_categories)
        if num_categories < 1:
            raise ValueError("at least one rate category is required")
        if num_categories > 1 and gamma_shape is None:
            gamma_shape = 1.0
        self._num_categories = num_categories
        self._gamma_shape = None
        self._invariant = 0.0
        if gamma_shape is not None:
            self.set_gamma_shape(gamma_shape)
        self.set_invariant(invariant)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(num_categories={self._num_categories}, "
            f"gamma_shape={self._gamma_shape}, invariant={self._invariant})"
        )

    @property
    def num_categories(self):
        return self._num_categories

    @property
    def gamma_shape(self):
        return self._gamma_shape

    @property
    def invariant(self):
        return self._invariant

    def set_gamma_shape(self, shape):
        shape = float(shape)
        if not shape > 0:
            raise ValueError(f"gamma shape must be > 0, not {shape}")
        self._gamma_shape = shape

    def set_invariant(self, proportion):
        proportion = float(proportion)
        if not 0 <= proportion < 1:
            raise ValueError(f"invariant proportion must be in [0, 1), not {proportion}")
        self._invariant = proportion

    @property
    def rates(self):
        if self._num_categories == 1:
            variable = numpy.ones(1)
        else:
            variable = gamma_medians(self._gamma_shape, self._num_categories)
        variable = variable / (1.0 - self._invariant)
        if self._invariant:
            return numpy.concatenate([[0.0], variable])
        return variable

    @property
    def proportions(self):
        variable = numpy.full(
            self._num_categories, (1.0 - self._invariant) / self._num_categories
        )
        if self._invariant:
            return numpy.concatenate([[self._invariant], variable])
        return variable

    def to_rich_dict(self):
        return {
            "type": get_object_provenance(self),
            "init_args": {
                "num_categories": self._num_categories,
                "gamma_shape": self._gamma_shape,
                "invariant": self._invariant,
            },
            "version": __version__,
        }

    def to_json(self):
        return json.dumps(self.to_rich_dict())
