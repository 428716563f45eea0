import numpy
import pytest

from numpy.testing import assert_allclose

from ssgd.evolve.site_rates import SiteRateModel, gamma_medians
from ssgd.util.deserialise import deserialise_object


def test_single_category():
    model = SiteRateModel()
    assert_allclose(model.rates, [1.0])
    assert_allclose(model.proportions, [1.0])
    assert model.gamma_shape is None


@pytest.mark.parametrize("shape", [0.1, 0.5, 1.0, 5.0])
@pytest.mark.parametrize("num", [2, 4, 8])
def test_gamma_medians(shape, num):
    rates = gamma_medians(shape, num)
    assert rates.shape == (num,)
    assert rates.mean() == pytest.approx(1.0)
    assert (numpy.diff(rates) > 0).all()


def test_gamma_categories():
    model = SiteRateModel(num_categories=4, gamma_shape=0.5)
    assert_allclose(model.proportions, [0.25] * 4)
    assert numpy.dot(model.rates, model.proportions) == pytest.approx(1.0)
    # default shape when several categories
    assert SiteRateModel(num_categories=3).gamma_shape == 1.0


def test_invariant():
    model = SiteRateModel(num_categories=4, gamma_shape=2.0, invariant=0.2)
    assert model.rates[0] == 0.0
    assert_allclose(model.proportions, [0.2] + [0.2] * 4)
    assert numpy.dot(model.rates, model.proportions) == pytest.approx(1.0)
    single = SiteRateModel(invariant=0.5)
    assert_allclose(single.rates, [0.0, 2.0])


@pytest.mark.parametrize(
    "kwargs",
    [
        {"num_categories": 0},
        {"num_categories": 2, "gamma_shape": 0},
        {"invariant": 1.0},
        {"invariant": -0.1},
    ],
)
def test_invalid(kwargs):
    with pytest.raises(ValueError):
        SiteRateModel(**kwargs)


def test_json():
    model = SiteRateModel(num_categories=3, gamma_shape=0.7, invariant=0.1)
    got = deserialise_object(model.to_json())
    assert_allclose(got.rates, model.rates)
    assert_allclose(got.proportions, model.proportions)
