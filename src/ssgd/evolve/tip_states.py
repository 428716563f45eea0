"""Partial likelihoods of canonical states given an observed state.

A tip-state model returns, for a taxon, a (number of observed states x 4)
matrix whose row for observed state o holds P(o | true canonical state).
"""

import numpy

from ssgd._version import __version__
from ssgd.core.alphabet import COMPATIBILITY, NUM_CANONICAL, complement_in_class
from ssgd.util.misc import get_object_provenance

ALL_SUBSTITUTIONS = "all"
TRANSITIONS_ONLY = "transitions"


class ExactTipStates:
    """observed states are the true states, ambiguities allow every
    compatible canonical state"""

    parameter_names = ()

    def tip_partials(self, taxon):
        return numpy.array(COMPATIBILITY)

    def _init_args(self):
        return {}

    def to_rich_dict(self):
        return {
            "type": get_object_provenance(self),
            "init_args": self._init_args(),
            "version": __version__,
        }


class SequenceErrorModel(ExactTipStates):
    """sequencing error and post-mortem damage, applied per taxon

    Parameters
    ----------
    base_error_rate
        probability an observed base is an error, independent of age
    age_error_rate
        rate of damage per unit of sample height
    error_type
        'all' (ALL_SUBSTITUTIONS), an error is equally likely to be any other
        base. 'transitions' (TRANSITIONS_ONLY), an error is the transition
        partner of the true base.
    include
        names of taxa subject to error, defaults to all
    exclude
        names of taxa not subject to error
    indicators
        dict of {taxon name: bool}, taxa mapped to False are not subject to
        error

    Notes
    -----
    For a taxon with error, the probability a base is undamaged is
    (1 - base_error_rate) * exp(-age_error_rate * height). Ambiguous
    observations are given a partial likelihood of 1 for every state.
    """

    def __init__(
        self,
        base_error_rate=None,
        age_error_rate=None,
        error_type=ALL_SUBSTITUTIONS,
        include=None,
        exclude=None,
        indicators=None,
    ):
        if base_error_rate is None and age_error_rate is None:
            raise ValueError("at least one of base_error_rate or age_error_rate required")
        if error_type not in (ALL_SUBSTITUTIONS, TRANSITIONS_ONLY):
            raise ValueError(
                f"error_type must be {ALL_SUBSTITUTIONS!r} or {TRANSITIONS_ONLY!r}, "
                f"not {error_type!r}"
            )
        self.error_type = error_type
        self.base_error_rate = base_error_rate
        self.age_error_rate = age_error_rate
        self.include = None if include is None else set(include)
        self.exclude = set(exclude or ())
        self.indicators = dict(indicators or {})

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(base_error_rate={self.base_error_rate}, "
            f"age_error_rate={self.age_error_rate}, error_type={self.error_type!r})"
        )

    def _init_args(self):
        return {
            "base_error_rate": self.base_error_rate,
            "age_error_rate": self.age_error_rate,
            "error_type": self.error_type,
            "include": None if self.include is None else sorted(self.include),
            "exclude": sorted(self.exclude),
            "indicators": self.indicators,
        }

    @property
    def parameter_names(self):
        return tuple(
            n
            for n in ("base_error_rate", "age_error_rate")
            if getattr(self, n) is not None
        )

    def has_error(self, taxon):
        name = taxon.name
        if self.include is not None and name not in self.include:
            return False
        if name in self.exclude:
            return False
        return self.indicators.get(name, True)

    def prob_undamaged(self, taxon):
        result = 1.0
        if self.base_error_rate is not None:
            result -= self.base_error_rate
        if self.age_error_rate is not None:
            result *= numpy.exp(-self.age_error_rate * taxon.height)
        return result

    def tip_partials(self, taxon):
        if not self.has_error(taxon):
            return super().tip_partials(taxon)

        undamaged = self.prob_undamaged(taxon)
        if self.error_type == ALL_SUBSTITUTIONS:
            transition = transversion = (1.0 - undamaged) / 3.0
        else:
            transition = 1.0 - undamaged
            transversion = 0.0

        result = numpy.ones(COMPATIBILITY.shape)
        for observed in range(NUM_CANONICAL):
            row = numpy.full(NUM_CANONICAL, transversion)
            row[complement_in_class(observed)] = transition
            row[observed] = undamaged
            result[observed] = row
        return result
