import numpy
import pytest

from numpy.testing import assert_allclose

from ssgd.evolve.demography import constant, make_skyline
from ssgd.evolve.simulate import (
    PairwisePatternSimulator,
    evolve_sites,
    simulate_genealogy,
)
from ssgd.evolve.site_rates import SiteRateModel


@pytest.mark.parametrize("demography", [constant(100.0), make_skyline([50, 500], 20)])
def test_genealogy(taxa, demography):
    rng = numpy.random.default_rng(7)
    parents, heights = simulate_genealogy(taxa, demography, rng)
    num_taxa = len(taxa)
    assert parents.shape == heights.shape == (2 * num_taxa - 1,)
    assert_allclose(heights[:num_taxa], taxa.heights)
    # single root, every internal node has two children
    assert (parents == -1).sum() == 1
    assert parents[-1] == -1
    counts = numpy.bincount(parents[:-1], minlength=parents.shape[0])
    assert (counts[num_taxa:] == 2).all()
    assert (counts[:num_taxa] == 0).all()
    for node, parent in enumerate(parents[:-1]):
        assert parent > node
        assert heights[parent] > heights[node]


def test_evolve_sites_mu_zero(taxa, hky):
    rng = numpy.random.default_rng(2)
    genealogy = simulate_genealogy(taxa, constant(100.0), rng)
    states = evolve_sites(genealogy, hky, numpy.ones(50), 0.0, rng)
    assert states.shape == (4, 50)
    assert (states == states[0]).all()


def test_simulate_patterns(taxa, hky, skyline):
    sim = PairwisePatternSimulator(
        taxa, skyline, hky, mu=1e-3, locus_length=25, num_loci=4, seed=11
    )
    patterns = sim.simulate_site_patterns()
    assert patterns.num_sites == 100
    assert patterns.states.max() < 4
    table = sim.simulate_patterns()
    assert table.get_total_weight() == 6 * 100


def test_seeded(taxa, hky, skyline):
    kwargs = dict(mu=1e-3, locus_length=30, num_loci=2, seed=5)
    first = PairwisePatternSimulator(taxa, skyline, hky, **kwargs)
    second = PairwisePatternSimulator(taxa, skyline, hky, **kwargs)
    a = first.simulate_site_patterns()
    b = second.simulate_site_patterns()
    assert (a.states == b.states).all()
    assert_allclose(a.weights, b.weights)


def test_site_rates(taxa, hky):
    rates = SiteRateModel(num_categories=2, gamma_shape=0.5, invariant=0.5)
    sim = PairwisePatternSimulator(
        taxa, constant(1000.0), hky, site_rates=rates, mu=1e-2, locus_length=200, seed=1
    )
    assert sim.simulate_site_patterns().num_sites == 200


def test_too_few_taxa(hky):
    with pytest.raises(ValueError):
        PairwisePatternSimulator({"a": 0.0}, constant(1.0), hky)


def test_divergence_increases_with_mu(taxa, hky):
    def num_differences(mu):
        sim = PairwisePatternSimulator(
            taxa, constant(1000.0), hky, mu=mu, locus_length=100, num_loci=20, seed=3
        )
        table = sim.simulate_patterns()
        total = 0.0
        for _, _, matrix in table.iter_pairs():
            total += matrix.sum() - numpy.trace(matrix)
        return total

    assert num_differences(1e-5) < num_differences(1e-3)
