import gc
import pathlib

import pytest

from ssgd.core.taxa import make_taxa
from ssgd.evolve.demography import make_skyline
from ssgd.evolve.substitution_model import HKY85


@pytest.fixture(scope="session")
def DATA_DIR() -> pathlib.Path:
    return pathlib.Path(__file__).parent / "data"


@pytest.fixture
def tmp_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("ssgd")


@pytest.fixture
def taxa():
    return make_taxa([("a", 0.0), ("b", 0.0), ("c", 50.0), ("d", 200.0)])


@pytest.fixture
def hky():
    return HKY85(kappa=2.0, freqs=[0.3, 0.2, 0.2, 0.3])


@pytest.fixture
def skyline():
    return make_skyline([1000.0, 3000.0, 500.0], durations=[100.0, 400.0])


@pytest.fixture
def seqs():
    return {
        "a": "ACGTACGTAAGGCCTTACGT",
        "b": "ACGTACGTAAGGCCTTACGA",
        "c": "ACGTATGTAAGGCCTTRCGT",
        "d": "ACGCACGTAAGG-CTTACGT",
    }


@pytest.fixture(scope="session", autouse=True)
def _try_cleaning_up_on_autouse_fixture_teardown():
    yield
    for _ in range(10):
        gc.collect()


def pytest_sessionfinish(session, exitstatus):
    for _ in range(10):
        gc.collect()
