import numpy

from ssgd.evolve.site_rates import SiteRateModel
from ssgd.evolve.tip_states import ExactTipStates


class PairwiseCompositeLikelihood:
    """sum over taxon pairs of the log-likelihood of their state pair counts

    Parameters
    ----------
    patterns
        a PairwisePatternTable
    integrator
        an Integrator, e.g. HKYSkylineIntegrator
    site_rates
        a SiteRateModel, defaults to a single category
    tip_model
        a tip-state model, defaults to ExactTipStates
    mu
        the mutation rate per unit time
    """

    def __init__(self, patterns, integrator, site_rates=None, tip_model=None, mu=1.0):
        self.patterns = patterns
        self.integrator = integrator
        self.site_rates = site_rates or SiteRateModel()
        self.tip_model = tip_model or ExactTipStates()
        self.mu = mu

    def __repr__(self):
        return f"{self.__class__.__name__}(patterns={self.patterns!r}, mu={self.mu})"

    def pair_probabilities(self, taxon_a, taxon_b):
        """observed state pair probabilities, rows are states of taxon_a"""
        rates = self.site_rates.rates
        proportions = self.site_rates.proportions
        joint = numpy.zeros((4, 4))
        for rate, proportion in zip(rates, proportions):
            joint += proportion * self.integrator.joint_matrix(
                taxon_a.height, taxon_b.height, self.mu * rate
            )
        tips_a = self.tip_model.tip_partials(taxon_a)
        tips_b = self.tip_model.tip_partials(taxon_b)
        return tips_a @ joint @ tips_b.T

    def pair_log_likelihood(self, taxon_a, taxon_b, counts=None):
        if counts is None:
            counts = self.patterns.get_pair_matrix(taxon_a, taxon_b)
        observed = counts > 0
        probs = self.pair_probabilities(taxon_a, taxon_b)
        with numpy.errstate(divide="ignore"):
            return float(numpy.sum(counts[observed] * numpy.log(probs[observed])))

    def log_likelihood(self):
        """the composite log-likelihood, -inf if any observed pair of states
        has probability 0"""
        total = 0.0
        for taxon_a, taxon_b, counts in self.patterns.iter_pairs():
            total += self.pair_log_likelihood(taxon_a, taxon_b, counts=counts)
        return total
