"""Local or Global-then-local optimisation with progress display
"""

import warnings

import numpy

from ssgd.util import progress_display as UI

from .scipy_optimisers import (
    DefaultLocalOptimiser,
    central_difference_gradient,
    local_optimisers,
)
from .simannealingoptimiser import SimulatedAnnealing

GlobalOptimiser = SimulatedAnnealing
LocalOptimiser = DefaultLocalOptimiser


def unsteadyProgressIndicator(display_progress, label="", start=0.0, end=1.0):
    template = "f = % #10.6g  ±  % 9.3e   evals = %6i "
    label = label.rjust(5)
    goal = [1.0e-20]

    def _display_progress(remaining, *args):
        if remaining > goal[0]:
            goal[0] = remaining
        progress = (goal[0] - remaining) / goal[0] * (end - start) + start
        msg = template % args + label
        return display_progress(msg, progress=progress)

    return _display_progress


class ParameterOutOfBoundsError(Exception):
    pass


class MaximumEvaluationsReached(Exception):
    pass


STRATEGIES = ("raw", "scaled")


class ObjectiveFunction:
    """exposes a scalar function of a parameter vector to optimisers

    Parameters
    ----------
    func
        callable taking a 1D array of parameter values
    lower, upper
        bounds on the parameter values
    scale
        typical magnitude of each parameter, used by the 'scaled' strategy.
        Defaults to the absolute values of the bounds midpoints.
    strategy
        'raw', optimisers see the parameter values. 'scaled', optimisers see
        the parameter values divided by scale.
    negate
        evaluate() returns -func(x), for minimisers
    step
        relative step size for the finite difference gradient
    """

    def __init__(
        self, func, lower, upper, scale=None, strategy="raw", negate=False, step=1e-6
    ):
        if strategy not in STRATEGIES:
            raise ValueError(f"strategy must be one of {STRATEGIES}, not {strategy!r}")
        self.func = func
        self._lower = numpy.array(lower, dtype=float)
        self._upper = numpy.array(upper, dtype=float)
        if self._lower.shape != self._upper.shape:
            raise ValueError("lower and upper bounds differ in length")
        if (self._lower > self._upper).any():
            raise ValueError("a lower bound exceeds its upper bound")
        if scale is None:
            scale = numpy.ones(self._lower.shape[0])
            finite = numpy.isfinite(self._lower) & numpy.isfinite(self._upper)
            mid = numpy.abs((self._lower + self._upper) / 2)
            scale[finite & (mid > 0)] = mid[finite & (mid > 0)]
        self._scale = numpy.array(scale, dtype=float)
        if (self._scale <= 0).any():
            raise ValueError("scale values must be > 0")
        self.strategy = strategy
        self.negate = negate
        self.step = step

    def __call__(self, x):
        return self.evaluate(x)

    def _divisor(self):
        return self._scale if self.strategy == "scaled" else 1.0

    def dimension(self):
        return self._lower.shape[0]

    def lower_bound(self, i):
        return float(self.bounds[0][i])

    def upper_bound(self, i):
        return float(self.bounds[1][i])

    @property
    def bounds(self):
        """(lower, upper) arrays in the coordinates seen by optimisers"""
        divisor = self._divisor()
        return self._lower / divisor, self._upper / divisor

    def to_internal(self, values):
        """converts parameter values to optimiser coordinates"""
        return numpy.array(values, dtype=float) / self._divisor()

    def from_internal(self, x):
        """converts optimiser coordinates to parameter values"""
        return numpy.array(x, dtype=float) * self._divisor()

    def evaluate(self, x):
        result = self.func(self.from_internal(x))
        return -result if self.negate else result

    def gradient(self, x):
        """symmetric finite difference gradient of evaluate()"""
        lower, upper = self.bounds
        return central_difference_gradient(
            self.evaluate, x, step=self.step, lower=lower, upper=upper
        )

    def negated(self):
        """returns a new instance evaluating the negative of this one"""
        return self.__class__(
            self.func,
            self._lower,
            self._upper,
            scale=self._scale,
            strategy=self.strategy,
            negate=not self.negate,
            step=self.step,
        )


# The following functions are used to wrap the optimised function to
# adapt it to the optimiser in various ways.  They can be combined.


def limited_use(f, max_evaluations=None):
    if max_evaluations is None:
        max_evaluations = numpy.inf
    evals = [0]
    best_fval = [-numpy.inf]
    best_x = [None]

    def wrapped_f(x):
        if evals[0] >= max_evaluations:
            raise MaximumEvaluationsReached(evals[0])
        evals[0] += 1
        fval = f(x)
        if fval > best_fval[0] or best_x[0] is None:
            best_fval[0] = fval
            best_x[0] = numpy.array(x, dtype=float)
        return fval

    def get_best():
        f(best_x[0])  # leave any side effects of f at the best point
        return best_fval[0], best_x[0], evals[0]

    return get_best, wrapped_f


def bounded_function(f, lower_bounds, upper_bounds):
    """Returns a function that raises an exception on out-of-bounds input
    rather than bothering the real function with invalid input.
    This is enough to get some unbounded optimisers working on bounded problems"""

    def _wrapper(x, **kw):
        if numpy.all(numpy.logical_and(lower_bounds <= x, x <= upper_bounds)):
            return f(x, **kw)
        pos = numpy.logical_or(x < lower_bounds, x > upper_bounds)
        lower = numpy.broadcast_to(lower_bounds, x.shape)
        upper = numpy.broadcast_to(upper_bounds, x.shape)
        raise ParameterOutOfBoundsError((lower[pos], x[pos], upper[pos]))

    return _wrapper


def bounds_exception_catching_function(f):
    """Returns a function that return -inf on out-of-bounds or otherwise
    impossible to evaluate input.  This only helps if the function is to be
    MAXIMISED."""
    out_of_bounds_value = -numpy.inf
    acceptable_inf = numpy.isneginf

    def _wrapper(x, **kw):
        try:
            result = f(x, **kw)
            if not numpy.isfinite(result):
                if not acceptable_inf(result):
                    warnings.warn(f"Non-finite f {result} from {x}")
                    raise ParameterOutOfBoundsError
        except (ArithmeticError, ValueError, ParameterOutOfBoundsError):
            result = out_of_bounds_value
        return result

    return _wrapper


def minimise(f, *args, **kw):
    """See maximise"""

    def nf(x):
        return -1 * f(x)

    return maximise(nf, *args, **kw)


@UI.display_wrap
def maximise(
    f,
    xinit,
    bounds=None,
    local=None,
    method=None,
    filename=None,
    interval=None,
    max_restarts=None,
    max_evaluations=None,
    limit_action="warn",
    tolerance=1e-6,
    global_tolerance=1e-1,
    ui=None,
    return_eval_count=False,
    **kw,
):
    """Find input values that optimise this function.

    Parameters
    ----------
    f
        function of a 1D array to maximise
    xinit
        initial values
    bounds
        (lower, upper) bounds
    local
        None runs the global then the local optimiser, True only the
        local, False only the global
    method
        name of the local optimiser, one of 'Powell' (default),
        'Nelder-Mead', 'L-BFGS-B', 'COBYLA'
    filename, interval
        control checkpointing of the global optimiser
    max_restarts
        number of times the local optimiser is restarted
    max_evaluations
        limit on the number of evaluations of f
    limit_action
        what to do when max_evaluations is reached, 'ignore', 'warn',
        'raise' or 'error'
    tolerance, global_tolerance
        convergence tolerances of the local and global optimisers
    kw
        passed on to the global optimiser
    """
    do_global = (not local) or local is None
    do_local = local or local is None

    assert limit_action in ["ignore", "warn", "raise", "error"]
    if method is None:
        local_class = LocalOptimiser
    else:
        try:
            local_class = local_optimisers[method]
        except KeyError:
            raise ValueError(
                f"unknown method {method!r}, choose from {list(local_optimisers)}"
            )
    (get_best, f) = limited_use(f, max_evaluations)

    x = numpy.array(xinit, float)
    multidimensional_input = x.shape != ()
    if not multidimensional_input:
        x = numpy.atleast_1d(x)

    lower = upper = None
    if bounds is not None:
        (lower, upper) = bounds
        if upper is not None or lower is not None:
            upper = numpy.inf if upper is None else numpy.array(upper, float)
            lower = -numpy.inf if lower is None else numpy.array(lower, float)
            f = bounded_function(f, lower, upper)
    try:
        fval = f(x)
    except (ArithmeticError, ParameterOutOfBoundsError) as detail:
        raise ValueError(f"Initial parameter values must be valid {repr(detail.args)}")
    if not numpy.isfinite(fval):
        raise ValueError(
            f"Initial parameter values must evaluate to a finite value, not {fval}. {x}"
        )

    f = bounds_exception_catching_function(f)

    try:
        # Global optimisation
        if do_global:
            gend = 0.9
            callback = unsteadyProgressIndicator(ui.display, "Global", 0.0, gend)
            gtol = [tolerance, global_tolerance][do_local]
            opt = GlobalOptimiser(filename=filename, interval=interval)
            x = opt.maximise(f, x, tolerance=gtol, show_remaining=callback, **kw)
        else:
            gend = 0.0
            for k in kw:
                warnings.warn("Unused arg for local optimisation: " + k)

        # Local optimisation
        if do_local:
            callback = unsteadyProgressIndicator(ui.display, "Local", gend, 1.0)
            opt = local_class()
            x = opt.maximise(
                f,
                x,
                tolerance=tolerance,
                max_restarts=max_restarts,
                show_remaining=callback,
                bounds=None if lower is None else (lower, upper),
            )
    except MaximumEvaluationsReached as detail:
        evals = detail.args[0]
        err_msg = f"FORCED EXIT from optimiser after {evals} evaluations"
        if limit_action == "warn":
            warnings.warn(err_msg, stacklevel=3)
        elif limit_action in ("raise", "error"):
            raise
    finally:
        # leave f evaluated at the best point, even when exiting on an exception
        (fval, x, evals) = get_best()

    if not multidimensional_input:
        x = numpy.squeeze(x)

    if return_eval_count:
        return x, evals

    return x
