"""Parsers for per-locus site pattern files and taxon tables.

A pattern file has one comma-delimited record per taxon per locus,

    [locus,]taxon,countA,countT,countG,countC,sequence

with the records of a locus forming a contiguous block, one line per taxon.
The constant-site counts of the first record in a block give the number of
unvariable sites not included in the sequences.
"""

import logging

from ssgd.core.patterns import SitePatterns
from ssgd.core.taxa import make_taxa
from ssgd.util.io import iter_splitlines

logger = logging.getLogger(__name__)

# order of the constant-site count fields
CONSTANT_ORDER = "ATGC"


class FileFormatError(ValueError):
    pass


class PatternFileError(FileFormatError):
    pass


def is_blank(line):
    return not line.strip()


def _count(field):
    try:
        return int(field)
    except ValueError:
        return 0


def parse_record(line):
    """returns (locus, taxon, {base: count}, sequence) from a record line

    locus is None if the record has no locus field
    """
    fields = [f.strip() for f in line.strip().split(",")]
    if len(fields) == 6:
        locus = None
    elif len(fields) == 7:
        locus = fields.pop(0)
    else:
        raise PatternFileError(
            f"expected 6 or 7 comma-delimited fields, got {len(fields)}: {line!r}"
        )
    taxon, *counts, sequence = fields
    return locus, taxon, dict(zip(CONSTANT_ORDER, map(_count, counts))), sequence


def _block_patterns(records, taxa, name):
    num_taxa = len(taxa)
    sequences = [None] * num_taxa
    for _, taxon, _, sequence in records:
        if taxon not in taxa:
            raise PatternFileError(f"No taxon with id={taxon}")
        index = taxa.index(taxon)
        if sequences[index] is not None:
            raise PatternFileError(f"taxon {taxon!r} duplicated in locus {name!r}")
        sequences[index] = sequence.upper()

    lengths = {len(s) for s in sequences}
    if len(lengths) != 1:
        raise PatternFileError(f"sequences of unequal length in locus {name!r}")

    patterns = SitePatterns(taxa, name=name)
    constants = records[0][2]
    for base in "ACGT":
        patterns.add_constant_sites(base, constants[base])
    try:
        for column in zip(*sequences):
            patterns.add_pattern(column)
    except ValueError as err:
        raise PatternFileError(f"locus {name!r}: {err}") from err
    return patterns


def parse_pattern_records(lines, taxa):
    """yields a SitePatterns for each locus block in lines

    Parameters
    ----------
    lines
        series of record lines, blank lines are ignored
    taxa
        a TaxonList, or data accepted by make_taxa()
    """
    taxa = make_taxa(taxa)
    num_taxa = len(taxa)
    block = []
    num_blocks = 0
    for line in lines:
        if is_blank(line):
            continue
        block.append(parse_record(line))
        if len(block) < num_taxa:
            continue

        name = block[0][0] or f"locus-{num_blocks}"
        logger.info("Processing gene %s.", name)
        yield _block_patterns(block, taxa, name)
        num_blocks += 1
        block = []

    if block:
        raise PatternFileError(
            f"incomplete locus block, {len(block)} records for {num_taxa} taxa"
        )


def load_site_patterns(path, taxa):
    """returns list of SitePatterns, one per locus, from a pattern file

    The file can be compressed.
    """
    return list(parse_pattern_records(iter_splitlines(path), taxa))


def combine_site_patterns(site_patterns, name=None):
    """returns a single SitePatterns holding all patterns of site_patterns"""
    site_patterns = list(site_patterns)
    if not site_patterns:
        raise ValueError("no site patterns to combine")
    combined = SitePatterns(site_patterns[0].taxa, name=name)
    for patterns in site_patterns:
        if patterns.taxa != combined.taxa:
            raise ValueError("site patterns have different taxa")
        for column, weight in zip(patterns.states.T, patterns.weights):
            combined.add_pattern(column, weight=weight)
    return combined


def load_pairwise_patterns(path, taxa):
    """returns the PairwisePatternTable of all loci in a pattern file"""
    return combine_site_patterns(load_site_patterns(path, taxa)).to_pairwise()


def load_taxa(path):
    """returns a TaxonList from lines of name and height

    Fields are tab or comma delimited. Lines starting with '#' are ignored.
    """
    taxa = []
    for line in iter_splitlines(path):
        if is_blank(line) or line.lstrip().startswith("#"):
            continue
        delim = "\t" if "\t" in line else ","
        fields = [f.strip() for f in line.strip().split(delim)]
        if len(fields) != 2:
            raise FileFormatError(f"expected name and height, got {line!r}")
        name, height = fields
        try:
            taxa.append((name, float(height)))
        except ValueError as err:
            raise FileFormatError(f"invalid height for {name!r}: {height!r}") from err
    return make_taxa(taxa)
