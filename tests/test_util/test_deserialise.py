import json

import pytest

from numpy.testing import assert_allclose

from ssgd.core.patterns import PairwisePatternTable
from ssgd.evolve.site_rates import SiteRateModel
from ssgd.util.deserialise import (
    deserialise_object,
    get_class,
    register_deserialiser,
)


def test_get_class():
    assert get_class("ssgd.evolve.site_rates.SiteRateModel") is SiteRateModel


def test_register_requires_str():
    with pytest.raises(TypeError):
        register_deserialiser(1)


def test_register_unique():
    with pytest.raises(AssertionError):
        register_deserialiser("ssgd.evolve.site_rates.SiteRateModel")


def test_not_typed():
    data = {"a": 1}
    assert deserialise_object(data) is data
    assert deserialise_object(json.dumps(data)) == data


def test_unknown_type():
    with pytest.raises(NotImplementedError):
        deserialise_object({"type": "ssgd.unknown.Thing"})


def test_from_file(tmp_dir, skyline):
    path = tmp_dir / "skyline.json"
    path.write_text(skyline.to_json())
    assert deserialise_object(path) == skyline
    assert deserialise_object(str(path)) == skyline


def test_pattern_table(taxa, seqs):
    table = PairwisePatternTable(taxa)
    table.add_sequences(seqs)
    got = deserialise_object(json.dumps(table.to_rich_dict()))
    assert isinstance(got, PairwisePatternTable)
    assert got.get_total_weight() == table.get_total_weight()
    assert_allclose(got.get_pair_matrix("a", "d"), table.get_pair_matrix("a", "d"))
