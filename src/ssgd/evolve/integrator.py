"""Integration of pairwise substitution probabilities over coalescence times.

For two lineages sampled at heights t_i and t_j the coalescence time is at
least start = max(t_i, t_j). Given coalescence at start + s the two sampled
states are separated by a branch of length 2 s + tau, tau = |t_i - t_j|. The
integrators here return

    integral_0^inf density(s) P(state_j | state_i, mu (2 s + tau)) ds

where density is the coalescent density of a lineage pair under a piecewise
constant population size.
"""

import numpy

from ssgd.core.alphabet import complement_in_class, is_transition
from ssgd.evolve.integrator_numba import integrate_epochs
from ssgd.util.misc import float_key


class Integrator:
    """memoised integration of a pair of (state, time) observations

    Subclasses implement _integrate(state_i, time_i, state_j, time_j, mu) for
    the canonically ordered observations and first_frequency(state).
    """

    def __init__(self):
        self._memo = {}
        self._hits = 0
        self._misses = 0

    @staticmethod
    def canonical_key(state_i, time_i, state_j, time_j, mu):
        """returns (key, swapped) for the unordered pair of observations"""
        first = (int(state_i), float_key(time_i))
        second = (int(state_j), float_key(time_j))
        swapped = second < first
        if swapped:
            first, second = second, first
        return (first, second, float_key(mu)), swapped

    def invalidate(self):
        """discards all memoised values and any derived model constants"""
        self._memo.clear()

    @property
    def cache_size(self):
        return len(self._memo)

    def cache_info(self):
        return {"hits": self._hits, "misses": self._misses, "size": len(self._memo)}

    def integrated_probability(self, state_i, time_i, state_j, time_j, mu):
        """probability of the second observation given the first, integrated
        over the coalescence time of the two lineages

        Notes
        -----
        The observations are put in canonical order before evaluation, so the
        result is identical when they are swapped. A numerically degenerate
        integral is returned as 0.0.
        """
        key, swapped = self.canonical_key(state_i, time_i, state_j, time_j, mu)
        try:
            result = self._memo[key]
            self._hits += 1
            return result
        except KeyError:
            pass

        self._misses += 1
        if swapped:
            state_i, time_i, state_j, time_j = state_j, time_j, state_i, time_i
        result = float(self._integrate(state_i, time_i, state_j, time_j, mu))
        if numpy.isnan(result) or result <= 0:
            result = 0.0
        self._memo[key] = result
        return result

    def integrated_joint_probability(self, state_i, time_i, state_j, time_j, mu):
        """stationary frequency of the canonically first state times
        integrated_probability()"""
        key, _ = self.canonical_key(state_i, time_i, state_j, time_j, mu)
        first_state = key[0][0]
        return self.first_frequency(first_state) * self.integrated_probability(
            state_i, time_i, state_j, time_j, mu
        )

    def joint_matrix(self, time_i, time_j, mu):
        """4x4 array of integrated_joint_probability, rows are states at time_i"""
        result = numpy.empty((4, 4))
        for i in range(4):
            for j in range(4):
                result[i, j] = self.integrated_joint_probability(
                    i, time_i, j, time_j, mu
                )
        return result

    def first_frequency(self, state):
        raise NotImplementedError

    def _integrate(self, state_i, time_i, state_j, time_j, mu):
        raise NotImplementedError


class HKYSkylineIntegrator(Integrator):
    """integrates the HKY substitution probability under a skyline coalescent

    Parameters
    ----------
    model
        an HKY85 instance
    demography
        a PiecewiseDemographicFunction

    Notes
    -----
    The model and demography are read, not owned. Whoever modifies either must
    call invalidate() before the next evaluation.
    """

    def __init__(self, model, demography):
        super().__init__()
        self.model = model
        self.demography = demography
        self._beta = None

    def invalidate(self):
        super().invalidate()
        self._beta = None

    @property
    def beta(self):
        if self._beta is None:
            self._beta = self.model.beta
        return self._beta

    def first_frequency(self, state):
        return float(self.model.freqs[state])

    def _integrate(self, state_i, time_i, state_j, time_j, mu):
        freqs = self.model.freqs
        kappa = self.model.kappa
        transition = is_transition(state_i, state_j)
        ihat = complement_in_class(state_i)
        class_freq = freqs[state_i] + freqs[ihat]
        sign = -1.0 if state_i == state_j else 1.0
        c = class_freq * (kappa - 1.0) + 1.0
        start = max(time_i, time_j)
        tau = abs(time_i - time_j)
        return integrate_epochs(
            self.demography.boundaries,
            self.demography.sizes,
            float(start),
            float(tau),
            float(self.beta * mu),
            transition,
            float(freqs[state_j]),
            float(freqs[ihat]),
            float(class_freq),
            sign,
            float(c),
        )
