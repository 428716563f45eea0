"""Piecewise-constant (skyline) effective population size through time.

Time zero is the present and increases into the past. Epoch k spans
[boundaries[k-1], boundaries[k]), the final epoch is unbounded.
"""

import json

import numpy

from ssgd._version import __version__
from ssgd.util.misc import get_object_provenance


class PiecewiseDemographicFunction:
    """a step function of population size

    Parameters
    ----------
    sizes
        the effective population size of each epoch, all > 0
    durations
        the durations of all but the final epoch, all >= 0

    Notes
    -----
    Instances do not notify dependants when modified. Owners of integrators
    that depend on an instance must call their invalidate() method.
    """

    def __init__(self, sizes, durations=None):
        self._sizes = self._validated_sizes(sizes)
        if durations is None:
            durations = []
        self._durations = self._validated_durations(durations, len(self._sizes))
        self._boundaries = numpy.cumsum(self._durations)

    @staticmethod
    def _validated_sizes(sizes):
        sizes = numpy.array(sizes, dtype=float).ravel()
        if sizes.shape[0] == 0:
            raise ValueError("at least one epoch is required")
        if not (numpy.isfinite(sizes).all() and (sizes > 0).all()):
            raise ValueError(f"epoch sizes must be finite and > 0, not {sizes}")
        return sizes

    @staticmethod
    def _validated_durations(durations, num_epochs):
        durations = numpy.array(durations, dtype=float).ravel()
        if durations.shape[0] != num_epochs - 1:
            raise ValueError(
                f"{num_epochs} epochs require {num_epochs - 1} durations, "
                f"not {durations.shape[0]}"
            )
        if not (numpy.isfinite(durations).all() and (durations >= 0).all()):
            raise ValueError(f"epoch durations must be finite and >= 0, not {durations}")
        return durations

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(sizes={self._sizes.tolist()}, "
            f"durations={self._durations.tolist()})"
        )

    def __eq__(self, other):
        if not isinstance(other, PiecewiseDemographicFunction):
            return False
        return numpy.array_equal(self._sizes, other._sizes) and numpy.array_equal(
            self._durations, other._durations
        )

    def epoch_count(self):
        return self._sizes.shape[0]

    def epoch_duration(self, k):
        """duration of epoch k, infinite for the final epoch"""
        if k == self.epoch_count() - 1:
            return numpy.inf
        return float(self._durations[k])

    def epoch_size(self, k):
        return float(self._sizes[k])

    @property
    def sizes(self):
        return self._sizes.copy()

    @property
    def durations(self):
        return self._durations.copy()

    @property
    def boundaries(self):
        """end times of all but the final epoch"""
        return self._boundaries.copy()

    def epoch_index_at(self, time):
        """index of the epoch containing time

        A time exactly on a boundary belongs to the later epoch.
        """
        if time < 0:
            raise ValueError(f"time must be >= 0, not {time}")
        return int(numpy.searchsorted(self._boundaries, time, side="right"))

    def size_at(self, time):
        return self.epoch_size(self.epoch_index_at(time))

    def set_sizes(self, sizes):
        sizes = self._validated_sizes(sizes)
        if sizes.shape != self._sizes.shape:
            raise ValueError(f"expected {self._sizes.shape[0]} sizes")
        self._sizes = sizes

    def set_size(self, k, size):
        sizes = self._sizes.copy()
        sizes[k] = size
        self.set_sizes(sizes)

    def set_durations(self, durations):
        self._durations = self._validated_durations(durations, self.epoch_count())
        self._boundaries = numpy.cumsum(self._durations)

    def copy(self):
        return self.__class__(self._sizes, self._durations)

    def to_rich_dict(self):
        return {
            "type": get_object_provenance(self),
            "init_args": {
                "sizes": self._sizes.tolist(),
                "durations": self._durations.tolist(),
            },
            "version": __version__,
        }

    def to_json(self):
        return json.dumps(self.to_rich_dict())


def make_skyline(sizes, durations=None):
    """returns a PiecewiseDemographicFunction

    Parameters
    ----------
    sizes
        the population size of each epoch, the first is the most recent
    durations
        duration of every epoch except the last. A single number is used
        for all epochs.
    """
    sizes = numpy.atleast_1d(numpy.array(sizes, dtype=float))
    if durations is not None and numpy.ndim(durations) == 0:
        durations = [float(durations)] * (sizes.shape[0] - 1)
    return PiecewiseDemographicFunction(sizes, durations)


def constant(size):
    """a single unbounded epoch"""
    return PiecewiseDemographicFunction([size])


def from_change_times(sizes, change_times):
    """returns a PiecewiseDemographicFunction from the times sizes change

    Parameters
    ----------
    sizes
        the population size of each epoch
    change_times
        increasing times at which epoch k ends, one fewer than sizes
    """
    change_times = numpy.array(change_times, dtype=float)
    if (numpy.diff(change_times) < 0).any():
        raise ValueError("change times must be non-decreasing")
    durations = numpy.diff(numpy.concatenate([[0.0], change_times]))
    return PiecewiseDemographicFunction(sizes, durations)
