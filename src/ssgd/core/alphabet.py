"""Nucleotide states.

Canonical states are ordered A, C, G, T. Observed states extend these with the
IUPAC ambiguity codes. Gaps and missing data are read as N.
"""

import numpy

CANONICAL = "ACGT"
OBSERVED = "ACGTRYMKSWHBVDN"

A, C, G, T = range(4)

IUPAC_AMBIGUITIES = {
    "A": "A",
    "C": "C",
    "G": "G",
    "T": "T",
    "R": "AG",
    "Y": "CT",
    "M": "AC",
    "K": "GT",
    "S": "CG",
    "W": "AT",
    "H": "ACT",
    "B": "CGT",
    "V": "ACG",
    "D": "AGT",
    "N": "ACGT",
}

_aliases = {"U": "T", "-": "N", "?": "N", "X": "N", "O": "N", ".": "N"}

_char_to_index = {c: i for i, c in enumerate(OBSERVED)}
for _alias, _target in _aliases.items():
    _char_to_index[_alias] = _char_to_index[_target]
for _c in list(_char_to_index):
    _char_to_index[_c.lower()] = _char_to_index[_c]


def _make_compatibility():
    result = numpy.zeros((len(OBSERVED), len(CANONICAL)), dtype=float)
    for i, char in enumerate(OBSERVED):
        for base in IUPAC_AMBIGUITIES[char]:
            result[i, CANONICAL.index(base)] = 1.0
    result.flags.writeable = False
    return result


# row i is the indicator of canonical states compatible with observed state i
COMPATIBILITY = _make_compatibility()

NUM_CANONICAL = len(CANONICAL)
NUM_OBSERVED = len(OBSERVED)


def state_index(char):
    """returns the observed state index of a sequence character"""
    try:
        return _char_to_index[char]
    except KeyError:
        raise ValueError(f"{char!r} is not a nucleotide character")


def seq_to_indices(seq):
    """returns numpy array of observed state indices for seq"""
    return numpy.array([state_index(c) for c in seq], dtype=numpy.int8)


def is_ambiguous(state):
    """whether observed state is not a single canonical base"""
    return state >= NUM_CANONICAL


def is_transition(i, j):
    """whether canonical states i and j are both purines or both pyrimidines"""
    return i % 2 == j % 2


def complement_in_class(i):
    """the other canonical state of the same purine/pyrimidine class"""
    return (i + 2) % 4
