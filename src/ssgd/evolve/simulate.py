"""Simulation of serially-sampled site patterns.

Each locus has its own genealogy, drawn from the heterochronous coalescent
under a piecewise-constant population size, down which HKY sites evolve.
"""

from collections import namedtuple

import numpy

from ssgd.core.patterns import SitePatterns
from ssgd.core.taxa import make_taxa
from ssgd.evolve.site_rates import SiteRateModel

Genealogy = namedtuple("Genealogy", ["parents", "heights"])
Genealogy.__doc__ = """node parents and heights, the first nodes are the taxa
and the last is the root (parent -1)"""


def _next_change(boundaries, time):
    index = numpy.searchsorted(boundaries, time, side="right")
    return boundaries[index] if index < boundaries.shape[0] else numpy.inf


def simulate_genealogy(taxa, demography, rng):
    """returns a Genealogy from the coalescent with sampling heights

    Parameters
    ----------
    taxa
        TaxonList, the heights are the sampling times
    demography
        a PiecewiseDemographicFunction
    rng
        a numpy random Generator

    Notes
    -----
    Any pair of lineages coalesces at rate 1 / N(t). At each epoch boundary
    or sampling time a new waiting time is drawn.
    """
    num_taxa = len(taxa)
    heights = list(taxa.heights)
    parents = [-1] * num_taxa
    order = sorted(range(num_taxa), key=lambda i: heights[i])
    sample_times = [heights[i] for i in order]
    boundaries = demography.boundaries

    next_sample = 0
    active = []
    time = sample_times[0]
    while next_sample < num_taxa or len(active) > 1:
        while next_sample < num_taxa and sample_times[next_sample] <= time:
            active.append(order[next_sample])
            next_sample += 1

        k = len(active)
        if k < 2:
            time = sample_times[next_sample]
            continue

        size = demography.size_at(time)
        rate = k * (k - 1) / 2 / size
        wait = rng.exponential(1 / rate)
        limit = min(
            _next_change(boundaries, time),
            sample_times[next_sample] if next_sample < num_taxa else numpy.inf,
        )
        if time + wait >= limit:
            time = limit
            continue

        time += wait
        first, second = rng.choice(k, size=2, replace=False)
        node = len(heights)
        heights.append(time)
        parents.append(-1)
        parents[active[first]] = node
        parents[active[second]] = node
        active = [n for i, n in enumerate(active) if i not in (first, second)]
        active.append(node)

    return Genealogy(numpy.array(parents), numpy.array(heights))


def _evolve_states(parent_states, psub, rng):
    cumulative = psub.cumsum(axis=1)[parent_states]
    draws = rng.random(parent_states.shape[0])
    states = (draws[:, None] > cumulative).sum(axis=1)
    return numpy.minimum(states, 3)


def evolve_sites(genealogy, model, rates, mu, rng):
    """returns taxa x sites array of canonical states at the tips

    Parameters
    ----------
    genealogy
        a Genealogy
    model
        HKY85 instance
    rates
        relative rate of each site
    mu
        the mutation rate
    rng
        a numpy random Generator
    """
    parents, heights = genealogy
    num_nodes = parents.shape[0]
    num_sites = rates.shape[0]
    states = numpy.empty((num_nodes, num_sites), dtype=int)
    root = num_nodes - 1
    states[root] = rng.choice(4, size=num_sites, p=model.freqs)
    categories, site_index = numpy.unique(rates, return_inverse=True)
    # children always have lower indices than their parents
    for node in range(num_nodes - 2, -1, -1):
        parent = parents[node]
        length = heights[parent] - heights[node]
        child = numpy.empty(num_sites, dtype=int)
        for c, rate in enumerate(categories):
            selected = site_index == c
            psub = model.calc_psub(mu * rate * length)
            child[selected] = _evolve_states(states[parent, selected], psub, rng)
        states[node] = child
    num_taxa = (num_nodes + 1) // 2
    return states[:num_taxa]


class PairwisePatternSimulator:
    """simulates site patterns from serially sampled taxa

    Parameters
    ----------
    taxa
        a TaxonList, or data accepted by make_taxa()
    demography
        a PiecewiseDemographicFunction
    model
        an HKY85 instance
    site_rates
        a SiteRateModel, defaults to a single rate category
    mu
        the mutation rate
    locus_length
        number of sites per locus
    num_loci
        number of loci, each with an independent genealogy
    seed
        seed for the numpy random generator
    """

    def __init__(
        self,
        taxa,
        demography,
        model,
        site_rates=None,
        mu=1.0,
        locus_length=1,
        num_loci=1,
        seed=None,
    ):
        self.taxa = make_taxa(taxa)
        if len(self.taxa) < 2:
            raise ValueError("at least 2 taxa are required")
        self.demography = demography
        self.model = model
        self.site_rates = site_rates or SiteRateModel()
        self.mu = mu
        self.locus_length = int(locus_length)
        self.num_loci = int(num_loci)
        self.rng = numpy.random.default_rng(seed)

    def simulate_genealogy(self):
        return simulate_genealogy(self.taxa, self.demography, self.rng)

    def simulate_locus(self):
        """taxa x locus_length array of canonical states"""
        genealogy = self.simulate_genealogy()
        rates = self.rng.choice(
            self.site_rates.rates,
            size=self.locus_length,
            p=self.site_rates.proportions,
        )
        return evolve_sites(genealogy, self.model, rates, self.mu, self.rng)

    def simulate_site_patterns(self):
        """returns SitePatterns of all loci"""
        patterns = SitePatterns(self.taxa)
        for _ in range(self.num_loci):
            columns, counts = numpy.unique(
                self.simulate_locus(), axis=1, return_counts=True
            )
            for column, count in zip(columns.T, counts):
                patterns.add_pattern(column, weight=count)
        return patterns

    def simulate_patterns(self):
        """returns a PairwisePatternTable of all loci"""
        return self.simulate_site_patterns().to_pairwise()
