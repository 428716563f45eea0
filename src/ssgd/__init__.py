"""Serially-Sampled Genome Demographics: estimating a piecewise-constant
population size history from time-stamped DNA sequences with a pairwise
composite likelihood."""

import logging
import os
import typing
import warnings
from importlib import import_module

from ssgd._version import __version__

__copyright__ = "Copyright 2026-date, The ssgd Project"
__license__ = "BSD-3"


def __getattr__(name: str) -> typing.Any:  # noqa: ANN401
    if (attr := globals().get(name)) is not None:
        return attr

    if name not in _import_mapping:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name = _import_mapping[name]
    module = import_module(f".{module_name}", package=__name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


_import_mapping = {
    "Taxon": "core.taxa",
    "TaxonList": "core.taxa",
    "make_taxa": "core.taxa",
    "PairwisePatternTable": "core.patterns",
    "SitePatterns": "core.patterns",
    "rescale_tables": "core.patterns",
    "PiecewiseDemographicFunction": "evolve.demography",
    "make_skyline": "evolve.demography",
    "HKY85": "evolve.substitution_model",
    "HKYSkylineIntegrator": "evolve.integrator",
    "SiteRateModel": "evolve.site_rates",
    "ExactTipStates": "evolve.tip_states",
    "SequenceErrorModel": "evolve.tip_states",
    "PairwiseCompositeLikelihood": "evolve.composite_likelihood",
    "LikelihoodFunction": "evolve.likelihood_function",
    "Bootstrapper": "evolve.bootstrap",
    "PairwisePatternSimulator": "evolve.simulate",
    "load_site_patterns": "parse.patterns",
    "load_pairwise_patterns": "parse.patterns",
    "load_taxa": "parse.patterns",
    "deserialise_object": "util.deserialise",
    "open_": "util.io",
}


def __dir__() -> list[str]:
    return list(_import_mapping.keys()) + list(globals().keys())


__all__ = list(_import_mapping.keys())

version = __version__
version_info = tuple(int(v) for v in version.split(".") if v.isdigit())


warn_env = "SSGD_WARNINGS"

if warn := os.environ.get(warn_env):
    warnings.simplefilter(warn)


# suppress numba warnings
__numba_logger = logging.getLogger("numba")
__numba_logger.setLevel(logging.WARNING)
