"""Site pattern collections and their pairwise summaries.

A SitePatterns instance is a taxa x patterns matrix of observed nucleotide
states with a weight per pattern. The composite likelihood only needs the
pairwise marginals of that matrix, which a PairwisePatternTable stores: for
every unordered pair of taxa the weighted counts of every ordered pair of
observed states.
"""

import logging

import numpy

from ssgd.core.alphabet import (
    NUM_CANONICAL,
    NUM_OBSERVED,
    OBSERVED,
    seq_to_indices,
    state_index,
)
from ssgd.core.taxa import make_taxa

logger = logging.getLogger(__name__)


def _as_state(state):
    if isinstance(state, str):
        return state_index(state)
    state = int(state)
    if not 0 <= state < NUM_OBSERVED:
        raise ValueError(f"state index {state} out of range")
    return state


def pair_index(m, n):
    """index of the unordered taxon pair (m, n) with m < n"""
    return m + n * (n - 1) // 2


class PairwisePatternTable:
    """weighted counts of state pairs for every unordered pair of taxa

    Parameters
    ----------
    taxa
        a TaxonList, or data accepted by make_taxa()
    name
        an optional identifier, e.g. the locus name
    """

    def __init__(self, taxa, name=None):
        self.taxa = make_taxa(taxa)
        num_taxa = len(self.taxa)
        if num_taxa < 2:
            raise ValueError("at least 2 taxa are required")
        self.name = name
        num_pairs = num_taxa * (num_taxa - 1) // 2
        self._weights = numpy.zeros((num_pairs, NUM_OBSERVED, NUM_OBSERVED))

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(num_taxa={len(self.taxa)}, "
            f"total_weight={self.get_total_weight():.6g})"
        )

    def _canonical(self, taxon_a, state_a, taxon_b, state_b):
        m = self.taxa.index(taxon_a)
        n = self.taxa.index(taxon_b)
        if m == n:
            raise ValueError("The two taxa must be different.")
        state_a = _as_state(state_a)
        state_b = _as_state(state_b)
        if m > n:
            m, n = n, m
            state_a, state_b = state_b, state_a
        return pair_index(m, n), state_a, state_b

    def add_pattern(self, taxon_a, state_a, taxon_b, state_b, weight=1.0):
        """adds weight to the count of (state_a, state_b) for the taxon pair

        Raises
        ------
        ValueError if taxon_a and taxon_b are the same
        """
        if weight < 0:
            raise ValueError(f"weight must be >= 0, not {weight}")
        pair, i, j = self._canonical(taxon_a, state_a, taxon_b, state_b)
        self._weights[pair, i, j] += weight

    def get_weight(self, taxon_a, state_a, taxon_b, state_b):
        pair, i, j = self._canonical(taxon_a, state_a, taxon_b, state_b)
        return float(self._weights[pair, i, j])

    def get_pair_matrix(self, taxon_a, taxon_b):
        """returns a copy of the state pair counts, rows are taxon_a states"""
        m = self.taxa.index(taxon_a)
        n = self.taxa.index(taxon_b)
        if m == n:
            raise ValueError("The two taxa must be different.")
        matrix = self._weights[pair_index(min(m, n), max(m, n))].copy()
        return matrix if m < n else matrix.T.copy()

    def get_total_weight(self):
        return float(self._weights.sum())

    def approximate_frequencies(self):
        """normalised canonical state frequencies from same-state counts

        Returns
        -------
        numpy array ordered as A, C, G, T
        """
        diag = numpy.diagonal(self._weights, axis1=1, axis2=2)[:, :NUM_CANONICAL]
        freqs = diag.sum(axis=0)
        total = freqs.sum()
        if total == 0:
            raise ValueError("no same-state patterns to estimate frequencies from")
        return freqs / total

    def rescale(self, factor):
        """multiplies all weights by factor"""
        if not factor >= 0:
            raise ValueError(f"scale factor must be >= 0, not {factor}")
        self._weights *= factor

    def add_sequences(self, seqs, weight=1.0):
        """counts all pairs of states from aligned sequences

        Parameters
        ----------
        seqs
            dict of {taxon name: sequence string}
        weight
            added for every aligned site
        """
        indexed = {}
        length = None
        for name, seq in seqs.items():
            states = seq_to_indices(seq) if isinstance(seq, str) else numpy.asarray(seq)
            if length is None:
                length = len(states)
            elif len(states) != length:
                raise ValueError("sequences are not all the same length")
            indexed[self.taxa.index(name)] = states

        order = sorted(indexed)
        for pos, m in enumerate(order):
            for n in order[pos + 1 :]:
                numpy.add.at(
                    self._weights[pair_index(m, n)],
                    (indexed[m], indexed[n]),
                    weight,
                )

    def iter_pairs(self):
        """yields (taxon_a, taxon_b, matrix) for pairs with non-zero counts"""
        num_taxa = len(self.taxa)
        for n in range(1, num_taxa):
            for m in range(n):
                matrix = self._weights[pair_index(m, n)]
                if matrix.any():
                    yield self.taxa[m], self.taxa[n], matrix

    def copy(self):
        new = self.__class__(self.taxa, name=self.name)
        new._weights = self._weights.copy()
        return new

    def to_rich_dict(self):
        patterns = []
        for a, b, matrix in self.iter_pairs():
            for i, j in zip(*numpy.nonzero(matrix)):
                patterns.append(
                    [a.name, OBSERVED[i], b.name, OBSERVED[j], float(matrix[i, j])]
                )
        return {
            "type": "ssgd.core.patterns.PairwisePatternTable",
            "name": self.name,
            "taxa": self.taxa.to_rich_dict()["taxa"],
            "patterns": patterns,
        }

    @classmethod
    def from_rich_dict(cls, data):
        table = cls(data["taxa"], name=data.get("name"))
        for a, i, b, j, weight in data["patterns"]:
            table.add_pattern(a, i, b, j, weight)
        return table


def rescale_tables(*tables):
    """rescales tables in place so the sum of their total weights is 1

    Returns
    -------
    the scale factor applied
    """
    total = sum(t.get_total_weight() for t in tables)
    if total <= 0:
        raise ValueError("tables have no weight to rescale")
    factor = 1.0 / total
    logger.info("Rescaling all pattern weights by %s", factor)
    for table in tables:
        table.rescale(factor)
    return factor


class SitePatterns:
    """observed states per taxon for a set of distinct site patterns

    Parameters
    ----------
    taxa
        a TaxonList, or data accepted by make_taxa()
    name
        an optional identifier, e.g. the locus name
    """

    def __init__(self, taxa, name=None):
        self.taxa = make_taxa(taxa)
        self.name = name
        self._patterns = []
        self._weights = []

    def __len__(self):
        return len(self._patterns)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(num_taxa={len(self.taxa)}, "
            f"num_patterns={self.num_patterns}, num_sites={self.num_sites:.6g})"
        )

    @property
    def num_patterns(self):
        return len(self._patterns)

    @property
    def num_sites(self):
        return float(sum(self._weights))

    @property
    def weights(self):
        return numpy.array(self._weights, dtype=float)

    @property
    def states(self):
        """taxa x patterns array of observed state indices"""
        if not self._patterns:
            return numpy.zeros((len(self.taxa), 0), dtype=numpy.int8)
        return numpy.array(self._patterns, dtype=numpy.int8).T

    def add_pattern(self, states, weight=1.0):
        """adds a site pattern

        Parameters
        ----------
        states
            one state per taxon, in taxa order. A string or series of
            characters / state indices.
        weight
            number of sites showing this pattern
        """
        if len(states) != len(self.taxa):
            raise ValueError(
                f"pattern has {len(states)} states, expected {len(self.taxa)}"
            )
        if weight < 0:
            raise ValueError(f"weight must be >= 0, not {weight}")
        self._patterns.append(tuple(_as_state(s) for s in states))
        self._weights.append(float(weight))

    def add_constant_sites(self, state, count):
        """adds count sites where every taxon shows state"""
        if count:
            self.add_pattern([state] * len(self.taxa), weight=count)

    def to_pairwise(self):
        """returns the PairwisePatternTable of these patterns"""
        table = PairwisePatternTable(self.taxa, name=self.name)
        states = self.states
        weights = self.weights
        num_taxa = len(self.taxa)
        for n in range(1, num_taxa):
            for m in range(n):
                numpy.add.at(
                    table._weights[pair_index(m, n)],
                    (states[m], states[n]),
                    weights,
                )
        return table

    def bootstrapped(self, rng):
        """returns a new SitePatterns with sites resampled with replacement

        Parameters
        ----------
        rng
            a numpy random Generator

        Notes
        -----
        The number of sites is preserved. Patterns are sampled in proportion to
        their weights, so non-integer weights are supported.
        """
        weights = self.weights
        total = weights.sum()
        if total <= 0:
            raise ValueError("no sites to resample")
        num_sites = int(round(total))
        counts = rng.multinomial(num_sites, weights / total)
        new = self.__class__(self.taxa, name=self.name)
        for pattern, count in zip(self._patterns, counts):
            if count:
                new._patterns.append(pattern)
                new._weights.append(float(count))
        return new

    def copy(self):
        new = self.__class__(self.taxa, name=self.name)
        new._patterns = list(self._patterns)
        new._weights = list(self._weights)
        return new
