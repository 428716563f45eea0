import itertools

import numpy
import pytest

from numpy.testing import assert_allclose
from scipy.integrate import quad

from ssgd.evolve.demography import constant, make_skyline
from ssgd.evolve.integrator import HKYSkylineIntegrator, Integrator
from ssgd.evolve.substitution_model import HKY85


def numerical_integral(model, demography, state_i, time_i, state_j, time_j, mu):
    """integrates the coalescent density times the substitution probability"""
    start = max(time_i, time_j)
    tau = abs(time_i - time_j)
    boundaries = [b - start for b in demography.boundaries if b > start]
    edges = [0.0] + boundaries + [numpy.inf]

    def density(s):
        # survival to start + s, times the rate at start + s
        log_survival = 0.0
        for lower, upper in zip(edges[:-1], edges[1:]):
            size = demography.size_at(start + lower)
            if s < upper:
                log_survival -= (s - lower) / size
                break
            log_survival -= (upper - lower) / size
        return numpy.exp(log_survival) / demography.size_at(start + s)

    def integrand(s):
        psub = model.calc_psub(mu * (2 * s + tau))
        return density(s) * psub[state_i, state_j]

    total = 0.0
    for lower, upper in zip(edges[:-1], edges[1:]):
        value, _ = quad(integrand, lower, upper, epsabs=1e-13, epsrel=1e-11, limit=200)
        total += value
    return total


@pytest.fixture
def integrator(hky, skyline):
    return HKYSkylineIntegrator(hky, skyline)


def test_base_class_abstract():
    with pytest.raises(NotImplementedError):
        Integrator().integrated_probability(0, 0.0, 1, 1.0, 1.0)


@pytest.mark.parametrize("state_i,state_j", itertools.product(range(4), repeat=2))
def test_single_epoch_matches_numerical(hky, state_i, state_j):
    demography = constant(1000.0)
    integrator = HKYSkylineIntegrator(hky, demography)
    got = integrator.integrated_probability(state_i, 0.0, state_j, 150.0, 1e-3)
    expect = numerical_integral(hky, demography, state_i, 0.0, state_j, 150.0, 1e-3)
    assert got == pytest.approx(expect, rel=1e-9, abs=1e-12)


@pytest.mark.parametrize(
    "time_i,time_j", [(0.0, 0.0), (0.0, 50.0), (20.0, 300.0), (150.0, 150.0), (0, 800)]
)
@pytest.mark.parametrize("state_i,state_j", [(0, 0), (0, 2), (1, 0), (3, 1), (2, 3)])
def test_multi_epoch_matches_numerical(
    hky, skyline, time_i, time_j, state_i, state_j
):
    integrator = HKYSkylineIntegrator(hky, skyline)
    got = integrator.integrated_probability(state_i, time_i, state_j, time_j, 5e-4)
    expect = numerical_integral(
        hky, skyline, state_i, time_i, state_j, time_j, 5e-4
    )
    assert got == pytest.approx(expect, rel=1e-7, abs=1e-12)


def test_symmetric(integrator):
    for state_i, state_j in itertools.product(range(4), repeat=2):
        forward = integrator.integrated_probability(state_i, 10.0, state_j, 250.0, 1e-3)
        reverse = integrator.integrated_probability(state_j, 250.0, state_i, 10.0, 1e-3)
        assert forward == reverse


def test_joint_matrix(integrator):
    joint = integrator.joint_matrix(0.0, 120.0, 1e-3)
    assert joint.sum() == pytest.approx(1.0)
    assert_allclose(integrator.joint_matrix(120.0, 0.0, 1e-3), joint.T)
    same_time = integrator.joint_matrix(40.0, 40.0, 1e-3)
    assert_allclose(same_time, same_time.T)


def test_non_negative(integrator):
    times = [0.0, 1.0, 99.9, 100.0, 450.0, 5000.0]
    for mu in (0.0, 1e-8, 1e-3, 10.0):
        for (ti, tj), (si, sj) in itertools.product(
            itertools.product(times, repeat=2), itertools.product(range(4), repeat=2)
        ):
            value = integrator.integrated_probability(si, ti, sj, tj, mu)
            assert 0.0 <= value <= 1.0 + 1e-12


@pytest.mark.parametrize("demography", [constant(500.0), make_skyline([10, 1e5], 50)])
def test_mu_zero(hky, demography):
    integrator = HKYSkylineIntegrator(hky, demography)
    for si, sj in itertools.product(range(4), repeat=2):
        got = integrator.integrated_probability(si, 0.0, sj, 70.0, 0.0)
        assert got == pytest.approx(float(si == sj), abs=1e-12)


def test_same_state_decreases_with_tau():
    model = HKY85(kappa=2.0, freqs=[0.3, 0.2, 0.2, 0.3])
    integrator = HKYSkylineIntegrator(model, constant(1000.0))
    values = [
        integrator.integrated_probability(0, 0.0, 0, tau, 1e-3)
        for tau in (0.0, 5.0, 10.0, 100.0, 500.0, 2000.0)
    ]
    assert all(0 < v < 1 for v in values)
    assert all(a > b for a, b in zip(values, values[1:]))


def test_memoised(integrator):
    first = integrator.integrated_probability(0, 0.0, 1, 50.0, 1e-3)
    assert integrator.cache_size == 1
    second = integrator.integrated_probability(1, 50.0, 0, 0.0, 1e-3)
    assert first == second
    assert integrator.cache_size == 1
    assert integrator.cache_info() == {"hits": 1, "misses": 1, "size": 1}


def test_invalidate(integrator, hky):
    before = integrator.integrated_probability(0, 0.0, 2, 50.0, 1e-3)
    hky.kappa = 10.0
    # stale until invalidated
    assert integrator.integrated_probability(0, 0.0, 2, 50.0, 1e-3) == before
    integrator.invalidate()
    assert integrator.cache_size == 0
    changed = integrator.integrated_probability(0, 0.0, 2, 50.0, 1e-3)
    assert changed != before
    hky.kappa = 2.0
    integrator.invalidate()
    assert integrator.integrated_probability(0, 0.0, 2, 50.0, 1e-3) == before


def test_joint_probability(integrator, hky):
    # the canonically first observation is state 0 at time 0.0
    value = integrator.integrated_probability(0, 0.0, 3, 20.0, 1e-3)
    got = integrator.integrated_joint_probability(3, 20.0, 0, 0.0, 1e-3)
    assert got == pytest.approx(hky.freqs[0] * value)


@pytest.mark.parametrize("time_i,time_j", [(0.0, 0.0), (0.0, 99.0), (40.0, 100.0)])
@pytest.mark.parametrize("state_i,state_j", [(0, 0), (0, 2), (1, 3), (3, 0)])
def test_zero_duration_epoch(hky, time_i, time_j, state_i, state_j):
    # two boundaries coincide at 100, the 50 epoch has no duration
    demography = make_skyline([1000.0, 50.0, 3000.0], durations=[100.0, 0.0])
    integrator = HKYSkylineIntegrator(hky, demography)
    got = integrator.integrated_probability(state_i, time_i, state_j, time_j, 5e-4)
    expect = numerical_integral(
        hky, demography, state_i, time_i, state_j, time_j, 5e-4
    )
    assert got == pytest.approx(expect, rel=1e-9, abs=1e-12)


def test_degenerate_integral_is_zero(integrator):
    got = integrator.integrated_probability(0, 5.0, 1, 5.0, numpy.inf)
    assert got == 0.0
    assert not numpy.signbit(got)
    # the sentinel is memoised
    assert integrator.integrated_probability(1, 5.0, 0, 5.0, numpy.inf) == 0.0
    assert integrator.cache_info()["hits"] >= 1
