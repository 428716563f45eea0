import numpy
import pytest

from ssgd.core.taxa import Taxon, TaxonList, make_taxa


def test_taxon_height():
    taxon = Taxon("x", 3)
    assert taxon.height == 3.0
    assert isinstance(taxon.height, float)
    with pytest.raises(ValueError):
        Taxon("x", -1.0)


@pytest.mark.parametrize(
    "data", [{"a": 0, "b": 10}, [("a", 0), ("b", 10)], [Taxon("a"), Taxon("b", 10)]]
)
def test_make_taxa(data):
    taxa = make_taxa(data)
    assert taxa.names == ["a", "b"]
    assert taxa.heights == [0.0, 10.0]
    assert make_taxa(taxa) is taxa


def test_index(taxa):
    assert taxa.index("c") == 2
    assert taxa.index(taxa[3]) == 3
    assert taxa.index(1) == 1
    assert taxa.get_taxon("d").height == 200.0
    assert "a" in taxa
    assert "z" not in taxa
    with pytest.raises(KeyError):
        taxa.index("z")
    with pytest.raises(IndexError):
        taxa.index(10)


def test_duplicate_names():
    with pytest.raises(ValueError):
        TaxonList([Taxon("a"), Taxon("a", 2)])


def test_equality(taxa):
    other = make_taxa(taxa.to_rich_dict()["taxa"])
    assert other == taxa
    assert hash(other) == hash(taxa)


def test_index_numpy_integer(taxa):
    assert taxa.index(numpy.int64(2)) == 2
    assert taxa.get_taxon(numpy.int32(3)).name == "d"
    with pytest.raises(IndexError):
        taxa.index(numpy.int64(4))
