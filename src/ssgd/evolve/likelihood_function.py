"""Parameter controller for pairwise composite likelihoods.

A LikelihoodFunction owns the substitution model, demographic function,
site-rate model and tip-state model shared by one or more pattern tables
(loci), exposes their parameters by name and optimises them.
"""

import json
import time
import warnings

import numpy

from scitrack import CachingLogger

from ssgd._version import __version__
from ssgd.evolve.composite_likelihood import PairwiseCompositeLikelihood
from ssgd.evolve.integrator import HKYSkylineIntegrator
from ssgd.evolve.site_rates import SiteRateModel
from ssgd.evolve.tip_states import ExactTipStates
from ssgd.maths.optimisers import ObjectiveFunction, maximise
from ssgd.maths.stats import aic, bic
from ssgd.util.misc import (
    adjusted_gt_minprob,
    adjusted_within_bounds,
    get_object_provenance,
    get_setting_from_environ,
)

OPTIMISER_ENV = "SSGD_OPTIMISER_SETTINGS"


def _str_to_bool(value):
    return value.lower() in ("1", "true", "yes")


_optimiser_env_types = {
    "method": str,
    "strategy": str,
    "tolerance": float,
    "max_restarts": int,
    "max_evaluations": int,
    "local": _str_to_bool,
}


class ParamRule:
    """the current value, bounds and status of a parameter"""

    def __init__(self, name, value, lower, upper, is_constant=False, scale=None):
        self.name = name
        self.value = float(value)
        self.lower = float(lower)
        self.upper = float(upper)
        self.is_constant = bool(is_constant)
        self.scale = float(scale) if scale else (abs(self.value) or 1.0)

    def __repr__(self):
        status = "constant" if self.is_constant else f"[{self.lower}, {self.upper}]"
        return f"{self.__class__.__name__}({self.name}={self.value:.6g}, {status})"

    def to_rich_dict(self):
        return {
            "par_name": self.name,
            "value": self.value,
            "lower": self.lower,
            "upper": self.upper,
            "is_constant": self.is_constant,
        }


class LikelihoodFunction:
    """composite likelihood of pairwise pattern tables with named parameters

    Parameters
    ----------
    model
        an HKY85 instance
    demography
        a PiecewiseDemographicFunction
    site_rates
        a SiteRateModel, defaults to a single rate category
    tip_model
        ExactTipStates (default) or a SequenceErrorModel
    mu
        the mutation rate per site per unit time
    name
        an optional name for this function

    Notes
    -----
    Parameters are kappa, mu, N0 .. N{m-1} (one size per epoch), gamma_shape
    (only if there are several rate categories), invariant, and the error
    rates of a SequenceErrorModel. By default mu, invariant and the base
    frequencies are constant.
    """

    def __init__(
        self, model, demography, site_rates=None, tip_model=None, mu=1.0, name=None
    ):
        self.model = model
        self.demography = demography
        self.site_rates = site_rates or SiteRateModel()
        self.tip_model = tip_model or ExactTipStates()
        self.integrator = HKYSkylineIntegrator(model, demography)
        self.name = name
        self._mu = float(mu)
        self._likelihoods = []
        self._rules = {}
        self._set_default_param_rules()

    def _set_default_param_rules(self):
        rules = [
            ParamRule("kappa", self.model.kappa, 1e-6, 1e3),
            ParamRule("mu", self._mu, 1e-12, 1e3, is_constant=True),
        ]
        for k in range(self.demography.epoch_count()):
            rules.append(ParamRule(f"N{k}", self.demography.epoch_size(k), 1e-3, 1e9))
        if self.site_rates.num_categories > 1:
            rules.append(ParamRule("gamma_shape", self.site_rates.gamma_shape, 1e-2, 1e3))
        rules.append(
            ParamRule("invariant", self.site_rates.invariant, 0.0, 0.99, is_constant=True)
        )
        for name in getattr(self.tip_model, "parameter_names", ()):
            rules.append(ParamRule(name, getattr(self.tip_model, name), 0.0, 1.0))
        self._rules = {r.name: r for r in rules}

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(model={self.model!r}, "
            f"demography={self.demography!r}, num_loci={len(self._likelihoods)})"
        )

    def __str__(self):
        lines = []
        title = f"{self.name or 'Likelihood function'}: lnL={self.lnL:.6f}"
        lines.append(title)
        lines.append("=" * len(title))
        width = max(len(n) for n in self._rules)
        for rule in self._rules.values():
            status = "constant" if rule.is_constant else "free"
            lines.append(f"{rule.name.ljust(width)}  {rule.value: .6g}  {status}")
        freqs = ", ".join(f"{b}={f:.4f}" for b, f in zip("ACGT", self.model.freqs))
        lines.append(f"{'freqs'.ljust(width)}  {freqs}")
        return "\n".join(lines)

    @property
    def mu(self):
        return self._mu

    @property
    def locus_names(self):
        return [lk.patterns.name for lk in self._likelihoods]

    @property
    def patterns(self):
        return [lk.patterns for lk in self._likelihoods]

    def set_patterns(self, *tables):
        """sets the PairwisePatternTable of each locus"""
        if len(tables) == 1 and isinstance(tables[0], (list, tuple)):
            tables = tuple(tables[0])
        if not tables:
            raise ValueError("at least one pattern table is required")
        self._likelihoods = [
            PairwiseCompositeLikelihood(
                table,
                self.integrator,
                site_rates=self.site_rates,
                tip_model=self.tip_model,
                mu=self._mu,
            )
            for table in tables
        ]

    def set_motif_probs(self, freqs):
        self.model.freqs = freqs
        self.integrator.invalidate()

    def set_motif_probs_from_data(self, pseudocount=0.0):
        """sets the base frequencies from same-state counts of all loci"""
        if not self._likelihoods:
            raise ValueError("no patterns set")
        counts = numpy.zeros(4)
        for table in self.patterns:
            counts += table.approximate_frequencies() * table.get_total_weight()
        counts += pseudocount
        freqs = adjusted_gt_minprob(counts / counts.sum())
        self.set_motif_probs(freqs)

    def get_param_names(self, free_only=False):
        return [n for n, r in self._rules.items() if not (free_only and r.is_constant)]

    def get_free_param_names(self):
        return self.get_param_names(free_only=True)

    def get_num_free_params(self):
        return len(self.get_free_param_names())

    def _get_rule(self, name):
        try:
            return self._rules[name]
        except KeyError:
            raise ValueError(f"unknown parameter {name!r}, choose from {list(self._rules)}")

    def get_param_value(self, name):
        return self._get_rule(name).value

    def get_param_values(self):
        return {n: r.value for n, r in self._rules.items()}

    def set_param_value(self, name, value):
        """sets the parameter on its owning model and invalidates the
        integrator"""
        rule = self._get_rule(name)
        value = float(value)
        if name == "kappa":
            self.model.kappa = value
        elif name == "mu":
            self._mu = value
            for lk in self._likelihoods:
                lk.mu = value
        elif name.startswith("N") and name[1:].isdigit():
            self.demography.set_size(int(name[1:]), value)
        elif name == "gamma_shape":
            self.site_rates.set_gamma_shape(value)
        elif name == "invariant":
            self.site_rates.set_invariant(value)
        else:
            setattr(self.tip_model, name, value)
        rule.value = value
        self.integrator.invalidate()

    def set_param_values(self, values):
        for name, value in values.items():
            self.set_param_value(name, value)

    def set_param_rule(
        self,
        par_name,
        is_constant=None,
        value=None,
        init=None,
        lower=None,
        upper=None,
        scale=None,
    ):
        """Define a constraint for par_name.

        Parameters
        ----------
        par_name
            the parameter being modified
        is_constant, value
            if True, the parameter is held constant at value, if provided,
            or its current value
        init
            starting value for optimisation, cannot be combined with value
        lower, upper
            bounds for optimisation
        scale
            the typical magnitude of the parameter, used by the 'scaled'
            optimiser strategy
        """
        rule = self._get_rule(par_name)
        if init is not None:
            if value is not None:
                raise ValueError("provide one of value or init")
            value = init
        if lower is not None:
            rule.lower = float(lower)
        if upper is not None:
            rule.upper = float(upper)
        if rule.lower > rule.upper:
            raise ValueError(f"{par_name}: lower {rule.lower} > upper {rule.upper}")
        if is_constant is not None:
            rule.is_constant = bool(is_constant)
        if scale is not None:
            rule.scale = float(scale)
        if value is not None:
            if not rule.is_constant and not rule.lower <= value <= rule.upper:
                raise ValueError(
                    f"{par_name}={value} not within [{rule.lower}, {rule.upper}]"
                )
            self.set_param_value(par_name, value)
            if scale is None:
                rule.scale = abs(rule.value) or 1.0

    def get_log_likelihood(self):
        if not self._likelihoods:
            raise ValueError("no patterns set")
        return sum(lk.log_likelihood() for lk in self._likelihoods)

    lnL = property(get_log_likelihood)

    def _evaluate_free(self, values):
        for name, value in zip(self.get_free_param_names(), values):
            self.set_param_value(name, value)
        return self.get_log_likelihood()

    def make_objective(self, strategy="raw"):
        """returns an ObjectiveFunction of the free parameter values"""
        rules = [self._rules[n] for n in self.get_free_param_names()]
        return ObjectiveFunction(
            self._evaluate_free,
            [r.lower for r in rules],
            [r.upper for r in rules],
            scale=[r.scale for r in rules],
            strategy=strategy,
        )

    def optimise(
        self,
        local=None,
        method=None,
        strategy=None,
        max_evaluations=None,
        tolerance=None,
        max_restarts=None,
        limit_action="warn",
        logger=None,
        show_progress=False,
        **kw,
    ):
        """maximises the log-likelihood over the free parameters

        Parameters
        ----------
        local
            True for the local optimiser only (default), False for the global
            only, None for global then local
        method
            the local optimiser, 'Powell' (default), 'Nelder-Mead',
            'L-BFGS-B' or 'COBYLA'
        strategy
            'scaled' (default) or 'raw', see ObjectiveFunction
        max_restarts
            number of times the local optimiser is restarted from its
            result, defaults to 1
        max_evaluations, tolerance, limit_action
            see maximise()
        logger
            a scitrack CachingLogger, records the result
        show_progress
            display a progress bar
        kw
            passed to maximise()

        Notes
        -----
        Defaults for local, method, strategy, tolerance, max_restarts and
        max_evaluations can be set with the SSGD_OPTIMISER_SETTINGS
        environment variable, e.g. 'method=COBYLA,tolerance=1e-8'.
        """
        if logger is not None and not isinstance(logger, CachingLogger):
            raise TypeError(f"logger must be of type CachingLogger not {type(logger)}")

        settings = {"local": True, "strategy": "scaled", "tolerance": 1e-6}
        settings.update(get_setting_from_environ(OPTIMISER_ENV, _optimiser_env_types))
        for name, value in (
            ("local", local),
            ("method", method),
            ("strategy", strategy),
            ("max_evaluations", max_evaluations),
            ("tolerance", tolerance),
            ("max_restarts", max_restarts),
        ):
            if value is not None:
                settings[name] = value

        names = self.get_free_param_names()
        if not names:
            warnings.warn("no free parameters to optimise")
            return
        start = time.time()
        objective = self.make_objective(strategy=settings.pop("strategy"))
        lower, upper = objective.bounds
        x0 = objective.to_internal([self._rules[n].value for n in names])
        x0 = numpy.array(
            [adjusted_within_bounds(v, lo, hi) for v, lo, hi in zip(x0, lower, upper)]
        )
        x = maximise(
            objective,
            x0,
            (lower, upper),
            limit_action=limit_action,
            show_progress=show_progress,
            **settings,
            **kw,
        )
        self._evaluate_free(objective.from_internal(numpy.atleast_1d(x)))
        if logger is not None:
            logger.log_message(self.to_json(), label="optimised likelihood function")
            logger.log_message(f"{time.time() - start}", label="TIME TAKEN")

    def _num_sites(self):
        total = 0.0
        for table in self.patterns:
            num_taxa = len(table.taxa)
            total += table.get_total_weight() / (num_taxa * (num_taxa - 1) / 2)
        return total

    def get_aic(self, second_order=False):
        """returns Aikake Information Criteria

        Parameters
        ----------
        second_order
            if true, the second order AIC adjusted by the number of sites
            (total pattern weight divided by the number of taxon pairs)
        """
        sample_size = self._num_sites() if second_order else None
        return aic(self.lnL, self.get_num_free_params(), sample_size)

    def get_bic(self):
        """returns the Bayesian Information Criteria"""
        return bic(self.lnL, self.get_num_free_params(), self._num_sites())

    def get_statistics(self):
        """dict of parameter values, lnL and number of free parameters"""
        result = self.get_param_values()
        result["freqs"] = self.model.freqs.tolist()
        result["lnL"] = self.lnL
        result["nfp"] = self.get_num_free_params()
        return result

    def to_rich_dict(self):
        return {
            "type": get_object_provenance(self),
            "name": self.name,
            "model": self.model.to_rich_dict(),
            "demography": self.demography.to_rich_dict(),
            "site_rates": self.site_rates.to_rich_dict(),
            "tip_model": self.tip_model.to_rich_dict(),
            "param_rules": [r.to_rich_dict() for r in self._rules.values()],
            "lnL": self.lnL if self._likelihoods else None,
            "version": __version__,
        }

    def to_json(self):
        return json.dumps(self.to_rich_dict())
