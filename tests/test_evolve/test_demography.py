import json

import numpy
import pytest

from numpy.testing import assert_allclose

from ssgd.evolve.demography import (
    PiecewiseDemographicFunction,
    constant,
    from_change_times,
    make_skyline,
)
from ssgd.util.deserialise import deserialise_object


def test_epochs(skyline):
    assert skyline.epoch_count() == 3
    assert skyline.epoch_duration(0) == 100
    assert skyline.epoch_duration(2) == numpy.inf
    assert skyline.epoch_size(1) == 3000
    assert_allclose(skyline.boundaries, [100, 500])


@pytest.mark.parametrize(
    "time,expect", [(0, 0), (99.9, 0), (100, 1), (499, 1), (500, 2), (1e6, 2)]
)
def test_epoch_index_at(skyline, time, expect):
    assert skyline.epoch_index_at(time) == expect


def test_size_at(skyline):
    assert skyline.size_at(250) == 3000
    with pytest.raises(ValueError):
        skyline.size_at(-1)


@pytest.mark.parametrize(
    "sizes,durations",
    [([], None), ([1, 0], [10]), ([1, 2], [-1]), ([1, 2], [1, 2]), ([1, -2], [1])],
)
def test_invalid(sizes, durations):
    with pytest.raises(ValueError):
        PiecewiseDemographicFunction(sizes, durations)


def test_set_sizes(skyline):
    skyline.set_size(1, 10.0)
    assert_allclose(skyline.sizes, [1000, 10, 500])
    with pytest.raises(ValueError):
        skyline.set_size(0, 0.0)
    with pytest.raises(ValueError):
        skyline.set_sizes([1, 2])
    skyline.set_durations([10, 10])
    assert_allclose(skyline.boundaries, [10, 20])


def test_copy_independent(skyline):
    new = skyline.copy()
    assert new == skyline
    new.set_size(0, 1.0)
    assert new != skyline


def test_make_skyline():
    got = make_skyline([1, 2, 3], durations=5)
    assert_allclose(got.durations, [5, 5])
    assert constant(100).epoch_count() == 1
    changed = from_change_times([1, 2, 3], [10, 30])
    assert_allclose(changed.durations, [10, 20])
    with pytest.raises(ValueError):
        from_change_times([1, 2, 3], [30, 10])


def test_json(skyline):
    data = json.loads(skyline.to_json())
    assert data["type"].endswith("PiecewiseDemographicFunction")
    got = deserialise_object(skyline.to_json())
    assert got == skyline
