"""Local optimisers wrapping scipy.optimize.minimize"""

import math

import numpy

from scipy.optimize import minimize


def central_difference_gradient(function, x, step=1e-6, lower=None, upper=None):
    """gradient of function at x by symmetric finite differences

    Parameters
    ----------
    function
        scalar function of a 1D array
    x
        the point
    step
        relative step size, the step for x[i] is step * max(1, |x[i]|)
    lower, upper
        if provided, steps are shortened to stay within these bounds
    """
    x = numpy.array(x, dtype=float)
    grad = numpy.empty(x.shape[0])
    for i in range(x.shape[0]):
        h = step * max(1.0, abs(x[i]))
        h_down = h_up = h
        if lower is not None and numpy.isfinite(lower[i]):
            h_down = min(h, x[i] - lower[i])
        if upper is not None and numpy.isfinite(upper[i]):
            h_up = min(h, upper[i] - x[i])
        if h_down <= 0 and h_up <= 0:
            grad[i] = 0.0
            continue
        up = x.copy()
        down = x.copy()
        up[i] += h_up
        down[i] -= h_down
        grad[i] = (function(up) - function(down)) / (h_up + h_down)
    return grad


def _as_limits(bounds, dimension):
    """lower and upper arrays, infinite where there is no bound"""
    lower = numpy.full(dimension, -numpy.inf)
    upper = numpy.full(dimension, numpy.inf)
    if bounds is not None:
        lo, hi = bounds
        if lo is not None:
            lower[:] = numpy.broadcast_to(numpy.asarray(lo, dtype=float), (dimension,))
        if hi is not None:
            upper[:] = numpy.broadcast_to(numpy.asarray(hi, dtype=float), (dimension,))
    return lower, upper


def _scipy_bounds(lower, upper):
    if not (numpy.isfinite(lower).any() or numpy.isfinite(upper).any()):
        return None
    return [
        (lo if numpy.isfinite(lo) else None, hi if numpy.isfinite(hi) else None)
        for lo, hi in zip(lower, upper)
    ]


class _SciPyOptimiser(object):
    """This class is abstract. Subclasses set method, the name of a
    scipy.optimize.minimize method, and may override _options().

    If max_step is set, each call to scipy searches only within
    max_step * max(1, |x|) of the current point. A result on the edge of
    that region becomes the centre of the next one, so the search moves in
    steps no larger than max_step.

    Since these are local optimisers, we sometimes restart them to
    check the result is stable.  Cost is less than 2-fold slowdown"""

    method = None
    max_step = None
    max_moves = 100

    def maximise(self, function, *args, **kw):
        def nf(x):
            return -1 * function(x)

        return self.minimise(nf, *args, **kw)

    def _objective(self, function, x):
        return function

    def _options(self, function, bounds, tolerance):
        return {"bounds": bounds}

    def _region(self, x, lower, upper):
        if self.max_step is None:
            return lower, upper
        radius = self.max_step * numpy.maximum(1.0, numpy.abs(x))
        return numpy.maximum(lower, x - radius), numpy.minimum(upper, x + radius)

    def _on_edge(self, x, lower, upper, region_lower, region_upper):
        """True if x lies on a side of the search region that is not a bound"""
        below = (region_lower > lower) & numpy.isclose(x, region_lower, rtol=1e-4)
        above = (region_upper < upper) & numpy.isclose(x, region_upper, rtol=1e-4)
        return bool((below | above).any())

    def minimise(
        self,
        function,
        xopt,
        show_remaining,
        max_restarts=None,
        tolerance=None,
        bounds=None,
    ):
        if max_restarts is None:
            max_restarts = 1
        if tolerance is None:
            tolerance = 1e-6

        xopt = numpy.atleast_1d(numpy.array(xopt, dtype=float))
        if len(xopt) == 0:
            return xopt

        evals = [0]
        last = [numpy.inf]

        def counted(x):
            evals[0] += 1
            return function(x)

        if show_remaining:

            def _callback(xk, *args):
                fval = function(xk)
                delta = fval - last[0] if numpy.isfinite(last[0]) else numpy.inf
                last[0] = fval
                remaining = math.log(max(abs(delta) / tolerance, 1.0))
                show_remaining(remaining, -fval, delta, evals[0])

        else:
            _callback = None

        lower, upper = _as_limits(bounds, len(xopt))
        fval_last = numpy.inf
        restarts = 0
        for _ in range(self.max_moves):
            region_lower, region_upper = self._region(xopt, lower, upper)
            objective = self._objective(counted, xopt)
            options = self._options(
                objective, _scipy_bounds(region_lower, region_upper), tolerance
            )
            result = minimize(
                objective,
                xopt,
                method=self.method,
                tol=tolerance,
                callback=_callback,
                **options,
            )
            xopt = numpy.atleast_1d(result.x)
            fval = counted(xopt)
            if self._on_edge(xopt, lower, upper, region_lower, region_upper):
                fval_last = fval
                continue

            # same tolerance check as in fmin_powell
            if abs(fval_last - fval) < tolerance or restarts >= max_restarts:
                break
            fval_last = fval
            restarts += 1

        return xopt


class Powell(_SciPyOptimiser):
    """Powell's conjugate direction method, derivative free. The bounded
    line search spans the whole search region, so the region is kept
    near the current point."""

    method = "Powell"
    max_step = 4.0


class NelderMead(_SciPyOptimiser):
    method = "Nelder-Mead"


class LBFGSB(_SciPyOptimiser):
    """limited memory BFGS with a finite difference gradient, applied to
    the function divided by its magnitude at the starting point"""

    method = "L-BFGS-B"
    max_step = 4.0

    def _objective(self, function, x):
        size = abs(function(x))
        if not numpy.isfinite(size) or size == 0:
            size = 1.0

        def scaled(y):
            return function(y) / size

        return scaled

    def _options(self, function, bounds, tolerance):
        lower = upper = None
        if bounds is not None:
            lower = numpy.array([-numpy.inf if b[0] is None else b[0] for b in bounds])
            upper = numpy.array([numpy.inf if b[1] is None else b[1] for b in bounds])

        def jac(x):
            return central_difference_gradient(function, x, lower=lower, upper=upper)

        return {"bounds": bounds, "jac": jac}


class COBYLA(_SciPyOptimiser):
    """constrained optimisation by linear approximation, bounds are
    expressed as inequality constraints"""

    method = "COBYLA"

    def _options(self, function, bounds, tolerance):
        constraints = []
        for i, (lo, hi) in enumerate(bounds or []):
            if lo is not None:
                constraints.append(
                    {"type": "ineq", "fun": lambda x, i=i, lo=lo: x[i] - lo}
                )
            if hi is not None:
                constraints.append(
                    {"type": "ineq", "fun": lambda x, i=i, hi=hi: hi - x[i]}
                )
        return {"constraints": constraints, "options": {"rhobeg": 1.0}}


DefaultLocalOptimiser = Powell

local_optimisers = {
    "Powell": Powell,
    "Nelder-Mead": NelderMead,
    "L-BFGS-B": LBFGSB,
    "COBYLA": COBYLA,
}
