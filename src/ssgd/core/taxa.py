import numbers
from dataclasses import dataclass


@dataclass(frozen=True)
class Taxon:
    """a sampled sequence and its sampling height

    Heights are measured backward from the present, in the same units as the
    demographic function epoch durations.
    """

    name: str
    height: float = 0.0

    def __post_init__(self):
        height = float(self.height)
        if not height >= 0:
            raise ValueError(f"height of {self.name!r} must be >= 0, not {height}")
        object.__setattr__(self, "height", height)


class TaxonList:
    """an ordered collection of Taxon instances with lookup by name"""

    def __init__(self, taxa):
        self._taxa = tuple(taxa)
        self._index = {}
        for i, taxon in enumerate(self._taxa):
            if taxon.name in self._index:
                raise ValueError(f"duplicated taxon name {taxon.name!r}")
            self._index[taxon.name] = i

    def __len__(self):
        return len(self._taxa)

    def __iter__(self):
        return iter(self._taxa)

    def __getitem__(self, index):
        return self._taxa[index]

    def __contains__(self, item):
        name = getattr(item, "name", item)
        return name in self._index

    def __eq__(self, other):
        return isinstance(other, TaxonList) and self._taxa == other._taxa

    def __hash__(self):
        return hash(self._taxa)

    def __repr__(self):
        names = ", ".join(t.name for t in self._taxa)
        return f"{self.__class__.__name__}([{names}])"

    @property
    def names(self):
        return [t.name for t in self._taxa]

    @property
    def heights(self):
        return [t.height for t in self._taxa]

    def index(self, taxon):
        """returns index of taxon, which can be a Taxon, name or index"""
        if isinstance(taxon, numbers.Integral):
            taxon = int(taxon)
            if not 0 <= taxon < len(self._taxa):
                raise IndexError(f"taxon index {taxon} out of range")
            return taxon
        name = getattr(taxon, "name", taxon)
        try:
            return self._index[name]
        except KeyError:
            raise KeyError(f"unknown taxon {name!r}")

    def get_taxon(self, name):
        return self._taxa[self.index(name)]

    def to_rich_dict(self):
        return {"taxa": [[t.name, t.height] for t in self._taxa]}


def make_taxa(data):
    """returns a TaxonList

    Parameters
    ----------
    data
        a dict of {name: height}, or a series of (name, height) pairs
    """
    if isinstance(data, TaxonList):
        return data
    if hasattr(data, "items"):
        data = data.items()
    taxa = []
    for item in data:
        if not isinstance(item, Taxon):
            item = Taxon(*item)
        taxa.append(item)
    return TaxonList(taxa)
