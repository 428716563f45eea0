"""
Simulated annealing optimiser, used for the global phase of maximise().

Follows simman.f by Bill Goffe, described in "Global Optimization of
Statistical Functions with Simulated Annealing," Goffe, Ferrier and Rogers,
Journal of Econometrics, vol. 60, no. 1/2, Jan./Feb. 1994, pp. 65-100.
"""

import random

from collections import deque
from math import log

import numpy

from ssgd.util import checkpointing


class AnnealingSchedule(object):
    """Responsible for the shape of the simulated annealing temperature profile"""

    def __init__(self, temp_reduction, initial_temp, temp_iterations, step_cycles):
        if initial_temp < 0.0:
            raise ValueError("Initial temperature not +ve")
        self.T = self.initial_temp = initial_temp
        self.temp_reduction = temp_reduction
        self.temp_iterations = temp_iterations
        self.step_cycles = step_cycles
        self.dwell = temp_iterations * step_cycles

    def check_same_conditions(self, other):
        for attr in [
            "temp_reduction",
            "initial_temp",
            "temp_iterations",
            "step_cycles",
        ]:
            if getattr(self, attr) != getattr(other, attr):
                raise ValueError(f"Checkpoint file ignored - {attr} different")

    def rounds_to_reach(self, T):
        return int(-log(self.initial_temp / T) / log(self.temp_reduction)) + 1

    def cool(self):
        self.T = self.temp_reduction * self.T

    def will_accept(self, new_f, old_f, random_series):
        delta_f = new_f - old_f
        if delta_f >= 0:
            return True
        if not numpy.isfinite(delta_f):
            return False
        return random_series.uniform(0.0, 1.0) < numpy.exp(delta_f / self.T)


class AnnealingHistory(object):
    """Keeps the last few results, for convergence testing"""

    def __init__(self, sample=4):
        self.values = deque([None] * sample, maxlen=sample)

    def note(self, F):
        self.values.append(F)

    def min_remaining_rounds(self, tolerance):
        last = self.values[-1]
        return max(
            [0]
            + [
                i + 1
                for (i, v) in enumerate(self.values)
                if v is None or abs(v - last) > tolerance
            ]
        )


class AnnealingState(object):
    """current and best points, and the per-dimension step sizes"""

    def __init__(self, X, function, random_series):
        self.random_series = random_series
        self.num_evaluations = 1
        X = numpy.array(X, float)
        # step sizes start in proportion to the magnitude of each parameter
        self.step_sizes = numpy.maximum(numpy.abs(X), 1.0)
        self.set_x(X, function(X))
        (self.x_opt, self.f_opt) = (self.X.copy(), self.F)
        self.num_accepted = [0] * len(X)
        self.num_tries = 0

    def set_x(self, X, F):
        self.X = numpy.array(X, float)
        self.F = F

    def step(self, function, accept_test):
        # One attempted move in each dimension
        X = self.X
        self.num_tries += 1
        for dim in range(len(X)):
            self.num_evaluations += 1

            current_value = X[dim]
            X[dim] += self.step_sizes[dim] * self.random_series.uniform(-1.0, 1.0)
            F = function(X)

            if accept_test(F, self.F, self.random_series):
                self.num_accepted[dim] += 1
                self.F = F
                if F > self.f_opt:
                    (self.f_opt, self.x_opt) = (F, X.copy())
            else:
                X[dim] = current_value

    def adjust_step_sizes(self):
        # keep acceptance ratios near 50%
        if self.num_tries == 0:
            return
        for dim in range(len(self.X)):
            ratio = (self.num_accepted[dim] * 1.0) / self.num_tries
            if ratio > 0.6:
                self.step_sizes[dim] *= 1.0 + (2.0 * ((ratio - 0.6) / 0.4))
            elif ratio < 0.4:
                self.step_sizes[dim] /= 1.0 + (2.0 * ((0.4 - ratio) / 0.4))
            self.num_accepted[dim] = 0
        self.num_tries = 0


class AnnealingRun(object):
    def __init__(self, function, X, schedule, random_series):
        self.history = AnnealingHistory()
        self.schedule = schedule
        self.state = AnnealingState(X, function, random_series)
        self.test_count = 0

    def check_function(self, function, xopt, checkpointing_filename):
        if len(xopt) != len(self.state.x_opt):
            raise ValueError(
                f"Number of parameters in checkpoint file '{checkpointing_filename}' "
                f"({len(self.state.x_opt)}) don't match current function ({len(xopt)})"
            )
        # if f(x) != g(x) then f isn't g.
        then = self.state.f_opt
        now = function(self.state.x_opt)
        if not numpy.allclose(now, then, 1e-8):
            raise ValueError(
                "Function to optimise doesn't match checkpoint file "
                f"'{checkpointing_filename}': F={now} now, {then} in file."
            )

    def run(self, function, tolerance, checkpointer, show_remaining):
        state = self.state
        history = self.history
        schedule = self.schedule

        est_anneal_remaining = schedule.rounds_to_reach(tolerance / 10) + 3
        while True:
            min_history_remaining = history.min_remaining_rounds(tolerance)
            if min_history_remaining == 0:
                break
            self.save(checkpointer)
            remaining = max(min_history_remaining, est_anneal_remaining)
            est_anneal_remaining += -1

            for i in range(self.schedule.dwell):
                show_remaining(
                    remaining + 1 - i / self.schedule.dwell,
                    state.f_opt,
                    schedule.T,
                    state.num_evaluations,
                )
                state.step(function, self.schedule.will_accept)
                self.test_count += 1
                if self.test_count % schedule.step_cycles == 0:
                    state.adjust_step_sizes()

            history.note(state.F)
            state.set_x(state.x_opt, state.f_opt)
            schedule.cool()

        self.save(checkpointer, final=True)

        return state

    def save(self, checkpointer, final=False):
        msg = (
            f"Number of function evaluations = {self.state.num_evaluations}; "
            f"current F = {self.state.f_opt}"
        )
        checkpointer.record(self, msg, final)


class SimulatedAnnealing(object):
    """Simulated annealing optimiser for bounded functions"""

    def __init__(self, filename=None, interval=None, restore=True):
        """
        Set the checkpointing filename and time interval.

        Parameters
        ----------
        filename
            name of the file to which data will be written. If None, no
            checkpointing will be done.
        interval
            time expressed in seconds
        restore
            flag to restore from this filename or not. will be set to 0 after
            restoration
        """
        self.checkpointer = checkpointing.Checkpointer(filename, interval)
        self.restore = restore

    def maximise(
        self,
        function,
        xopt,
        show_remaining,
        random_series=None,
        seed=None,
        tolerance=None,
        temp_reduction=0.5,
        init_temp=5.0,
        temp_iterations=5,
        step_cycles=20,
    ):
        """Optimise function(xopt).

        Parameters
        ----------
        show_remaining
            callback reporting progress
        random_series
            a random.Random instance
        seed
            seeds random_series
        tolerance
            the error condition for termination, default is 1e-6
        temp_reduction
            the factor by which the annealing
            "temperature" is reduced, default is 0.5
        temp_iterations
            the number of iterations before a
            temperature reduction, default is 5
        step_cycles
            the number of cycles after which the step size
            is modified, default is 20

        Returns optimised parameter vector xopt
        """
        if tolerance is None:
            tolerance = 1e-6

        if len(xopt) == 0:
            return xopt

        random_series = random_series or random.Random()
        if seed is not None:
            random_series.seed(seed)

        schedule = AnnealingSchedule(
            temp_reduction, init_temp, temp_iterations, step_cycles
        )

        if self.restore and self.checkpointer.available():
            run = self.checkpointer.load()
            run.check_function(function, xopt, self.checkpointer.filename)
            run.schedule.check_same_conditions(schedule)
        else:
            run = AnnealingRun(function, xopt, schedule, random_series)
        self.restore = False

        result = run.run(
            function,
            tolerance,
            checkpointer=self.checkpointer,
            show_remaining=show_remaining,
        )

        return result.x_opt
