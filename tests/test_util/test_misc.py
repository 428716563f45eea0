"""Unit tests for utility functions."""

import numpy
import pytest

from numpy.testing import assert_allclose

from ssgd.evolve.demography import PiecewiseDemographicFunction
from ssgd.util.misc import (
    adjusted_gt_minprob,
    adjusted_within_bounds,
    float_key,
    get_object_provenance,
    get_setting_from_environ,
)


def test_adjusted_gt_minprob():
    """correctly adjust a prob vector so all values > minval"""
    vector = [0.8, 0.2, 0.0, 0.0]
    for minprob in (1e-3, 1e-6, 0):
        got = adjusted_gt_minprob(vector, minprob=minprob)
        assert got.min() > minprob
        assert got.sum() == pytest.approx(1.0)


def test_adjusted_within_bounds():
    """values correctly adjusted within specified bounds"""
    l, u = 1e-5, 2
    eps = 1e-6
    got = adjusted_within_bounds(l - eps, l, u, eps=eps)
    assert_allclose(got, l)
    got = adjusted_within_bounds(u + eps, l, u, eps=eps)
    assert_allclose(got, u)
    with pytest.raises(ValueError):
        adjusted_within_bounds(u + 4, l, u, eps=eps, action="raise")

    with pytest.raises(ValueError):
        adjusted_within_bounds(u - 4, l, u, eps=eps, action="raise")

    with pytest.warns(UserWarning):
        got = adjusted_within_bounds(u + 4, l, u, eps=eps)
    assert got == u


def test_float_key():
    assert float_key(1.0) == float_key(numpy.float64(1.0))
    assert float_key(0.1 + 0.2) != float_key(0.3)
    assert float_key(0.0) != float_key(-0.0)
    assert float_key(1.0) < float_key(2.0)


def test_get_object_provenance():
    assert get_object_provenance(PiecewiseDemographicFunction([1.0])) == (
        "ssgd.evolve.demography.PiecewiseDemographicFunction"
    )
    assert get_object_provenance(dict) == "dict"


def test_get_setting_from_environ(monkeypatch):
    """correctly recovers environment variables"""

    def make_env_setting(d):
        return ",".join([f"{k}={v}" for k, v in d.items()])

    env_name = "DUMMY_SETTING"
    monkeypatch.delenv(env_name, raising=False)
    assert get_setting_from_environ(env_name, {"num": int}) == {}

    setting = {"num_pos": 2, "num_seq": 4, "name": "blah"}
    single_setting = {"num_pos": 2}
    correct_names_types = {"num_pos": int, "num_seq": int, "name": str}
    incorrect_names_types = {"num_pos": int, "num_seq": int, "name": float}

    for stng in (setting, single_setting):
        monkeypatch.setenv(env_name, make_env_setting(stng))
        got = get_setting_from_environ(env_name, correct_names_types)
        assert got == stng

    monkeypatch.setenv(env_name, make_env_setting(setting))
    with pytest.warns(UserWarning):
        got = get_setting_from_environ(env_name, incorrect_names_types)
    assert "name" not in got
    for key in got:
        assert got[key] == setting[key]


def test_adjusted_gt_minprob_invalid():
    with pytest.raises(ValueError):
        adjusted_gt_minprob([0.5, 0.5], minprob=1.0)
    with pytest.raises(ValueError):
        adjusted_gt_minprob([0.5, 0.5], minprob=-1e-3)


def test_adjusted_gt_minprob_unchanged():
    vector = numpy.array([0.25, 0.25, 0.5])
    assert_allclose(adjusted_gt_minprob(vector), vector)


def test_adjusted_within_bounds_ignore():
    assert adjusted_within_bounds(0.5, 1, 2, action="ignore") == 1
    with pytest.raises(ValueError):
        adjusted_within_bounds(0.5, 1, 2, action="shout")


def test_get_setting_without_separator(monkeypatch):
    monkeypatch.setenv("DUMMY_SETTING", "num_pos,num_seq=4, name = blah")
    got = get_setting_from_environ(
        "DUMMY_SETTING", {"num_pos": int, "num_seq": int, "name": str}
    )
    assert got == {"num_seq": 4, "name": "blah"}
