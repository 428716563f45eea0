"""
Nonparametric bootstrapping of composite likelihood estimates.

Replicate 0 fits the observed site patterns. Each further replicate resamples
the sites of every locus with replacement, converts the resampled patterns to
pairwise tables and refits the likelihood function from the same starting
values. Replicates are run sequentially, sharing one likelihood function.
"""

import json
import logging
import time

import numpy

from scitrack import CachingLogger

from ssgd.core.patterns import rescale_tables
from ssgd.maths.stats import percentile_interval
from ssgd.util import progress_display as UI

logger = logging.getLogger(__name__)


class Bootstrapper:
    """estimates the sampling distribution of parameter estimates

    Parameters
    ----------
    likelihood_function
        a LikelihoodFunction, its patterns are replaced on each replicate
    site_patterns
        a SitePatterns instance, or a series of them (one per locus)
    num_replicates
        number of resampled data sets
    seed
        seed for the numpy random generator
    rescale
        rescale the pairwise tables so their total weight is 1
    logger
        a scitrack CachingLogger, each replicate result is recorded
    """

    def __init__(
        self,
        likelihood_function,
        site_patterns,
        num_replicates=10,
        seed=None,
        rescale=False,
        logger=None,
    ):
        if not isinstance(site_patterns, (list, tuple)):
            site_patterns = [site_patterns]
        self.likelihood_function = likelihood_function
        self.site_patterns = list(site_patterns)
        self.rescale = rescale
        self.set_logger(logger)
        self.results = []
        self.set_num_replicates(num_replicates)
        self.set_seed(seed)

    def set_num_replicates(self, num):
        num = int(num)
        if num < 0:
            raise ValueError(f"number of replicates must be >= 0, not {num}")
        self._num_replicates = num

    def set_seed(self, seed):
        self.seed = seed

    def set_logger(self, logger):
        if logger is not None and not isinstance(logger, CachingLogger):
            raise TypeError(f"logger must be of type CachingLogger not {type(logger)}")
        self.logger = logger

    @property
    def num_replicates(self):
        return self._num_replicates

    def _tables(self, site_patterns):
        tables = [p.to_pairwise() for p in site_patterns]
        if self.rescale:
            rescale_tables(*tables)
        return tables

    @UI.display_wrap
    def run(self, ui, **opt_args):
        """fits the observed and resampled data

        Parameters
        ----------
        opt_args
            passed to the likelihood function optimise() method

        Returns
        -------
        list of {'replicate': int, 'lnL': float, 'params': dict}, the first
        is the observed data
        """
        lf = self.likelihood_function
        start_values = lf.get_param_values()
        rng = numpy.random.default_rng(self.seed)
        if self.logger is not None:
            self.logger.log_versions(["ssgd", "numpy", "scipy"])
            self.logger.log_message(
                f"num_replicates={self._num_replicates}, seed={self.seed}",
                label="bootstrap",
            )

        def one_replicate(i):
            start = time.time()
            lf.set_param_values(start_values)
            if i == 0:
                patterns = self.site_patterns
            else:
                patterns = [p.bootstrapped(rng) for p in self.site_patterns]
            lf.set_patterns(*self._tables(patterns))
            lf.optimise(show_progress=False, **opt_args)
            result = {"replicate": i, "lnL": lf.lnL, "params": lf.get_param_values()}
            logger.info("replicate %d lnL=%s", i, result["lnL"])
            if self.logger is not None:
                self.logger.log_message(json.dumps(result), label=f"replicate {i}")
                self.logger.log_message(f"{time.time() - start}", label="TIME TAKEN")
            return result

        self.results = ui.map(
            one_replicate,
            list(range(self._num_replicates + 1)),
            noun="replicate",
        )
        lf.set_patterns(*self._tables(self.site_patterns))
        if self.results:
            lf.set_param_values(self.results[0]["params"])
        return self.results

    @property
    def observed(self):
        if not self.results:
            raise RuntimeError("run() has not been called")
        return self.results[0]

    def get_param_estimates(self, name):
        """estimates of name from the resampled replicates"""
        if not self.results:
            raise RuntimeError("run() has not been called")
        return numpy.array([r["params"][name] for r in self.results[1:]])

    def get_confidence_interval(self, name, alpha=0.05):
        """percentile interval of the resampled estimates of name"""
        return percentile_interval(self.get_param_estimates(name), alpha=alpha)
