import json

import pytest

from scitrack import CachingLogger

from ssgd.evolve.bootstrap import Bootstrapper
from ssgd.evolve.demography import constant
from ssgd.evolve.likelihood_function import LikelihoodFunction
from ssgd.evolve.simulate import PairwisePatternSimulator
from ssgd.evolve.substitution_model import HKY85


@pytest.fixture
def site_patterns(taxa):
    sim = PairwisePatternSimulator(
        taxa,
        constant(1000.0),
        HKY85(kappa=2.0),
        mu=1e-3,
        locus_length=50,
        num_loci=2,
        seed=17,
    )
    return [sim.simulate_site_patterns() for _ in range(2)]


@pytest.fixture
def lf():
    lf = LikelihoodFunction(HKY85(kappa=2.0), constant(800.0), mu=1e-3)
    lf.set_param_rule("kappa", is_constant=True)
    return lf


def test_run(lf, site_patterns):
    boot = Bootstrapper(lf, site_patterns, num_replicates=3, seed=1)
    results = boot.run(max_evaluations=200, limit_action="ignore")
    assert len(results) == 4
    assert [r["replicate"] for r in results] == [0, 1, 2, 3]
    assert boot.observed is results[0]
    # the observed fit is left in the likelihood function
    assert lf.get_param_value("N0") == results[0]["params"]["N0"]
    assert lf.lnL == pytest.approx(results[0]["lnL"])
    assert len(boot.get_param_estimates("N0")) == 3
    lower, upper = boot.get_confidence_interval("N0")
    assert lower <= upper


def test_seeded(lf, site_patterns):
    opt_args = dict(max_evaluations=100, limit_action="ignore")
    first = Bootstrapper(lf, site_patterns, num_replicates=2, seed=4).run(**opt_args)
    second = Bootstrapper(lf, site_patterns, num_replicates=2, seed=4).run(**opt_args)
    for a, b in zip(first, second):
        assert a["params"]["N0"] == pytest.approx(b["params"]["N0"])


def test_rescale(lf, site_patterns):
    boot = Bootstrapper(lf, site_patterns[0], num_replicates=0, rescale=True)
    boot.run(max_evaluations=50, limit_action="ignore")
    total = sum(t.get_total_weight() for t in lf.patterns)
    assert total == pytest.approx(1.0)


def test_not_run(lf, site_patterns):
    boot = Bootstrapper(lf, site_patterns)
    with pytest.raises(RuntimeError):
        boot.observed
    with pytest.raises(RuntimeError):
        boot.get_param_estimates("N0")
    with pytest.raises(ValueError):
        boot.set_num_replicates(-1)


def test_logger(lf, site_patterns, tmp_dir):
    logger = CachingLogger(create_dir=True)
    logger.log_file_path = str(tmp_dir / "bootstrap.log")
    boot = Bootstrapper(lf, site_patterns, num_replicates=1, seed=2, logger=logger)
    results = boot.run(max_evaluations=50, limit_action="ignore")
    logger.shutdown()
    text = (tmp_dir / "bootstrap.log").read_text()
    assert "replicate 1" in text
    assert json.dumps(results[1]) in text


def test_logger_type(lf, site_patterns):
    with pytest.raises(TypeError):
        Bootstrapper(lf, site_patterns, logger="bootstrap.log")
