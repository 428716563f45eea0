"""Small helpers shared across ssgd"""

import os
import warnings

import numpy


def adjusted_gt_minprob(probs, minprob=1e-6):
    """returns probs shifted and renormalised so every value exceeds minprob

    Base frequencies estimated from data are passed through this so that no
    state has probability zero.
    """
    if not 0 <= minprob < 1:
        raise ValueError(f"minprob must be in [0, 1), not {minprob}")
    probs = numpy.array(probs, dtype=float)
    if (probs > minprob).all():
        return probs

    # a shift satisfying (smallest + shift) / (total + dim * shift) > minprob
    total = probs.sum()
    dim = probs.shape[0]
    shift = (probs.min() + minprob * total) / (1 - minprob * dim)
    probs += shift + numpy.finfo(float).eps
    return probs / probs.sum()


def adjusted_within_bounds(value, lower, upper, eps=1e-7, action="warn"):
    """returns value moved into [lower, upper]

    Values within eps of a bound are moved without comment. Values further
    away are moved with a warning (action='warn'), silently ('ignore') or
    raise a ValueError ('raise').
    """
    if lower <= value <= upper:
        return value
    if action not in ("warn", "raise", "ignore"):
        raise ValueError(f"unknown action {action!r}")

    clipped = min(max(float(value), lower), upper)
    if abs(clipped - value) <= eps + numpy.finfo(float).eps:
        return clipped

    msg = f"value {value} not within bounds [{lower}, {upper}]"
    if action == "raise":
        raise ValueError(msg)
    if action == "warn":
        warnings.warn(f"{msg}, set to {clipped}")
    return clipped


def get_object_provenance(obj):
    """returns the module qualified name of obj's class, or of obj if it
    is a class. Builtins are not qualified."""
    klass = obj if isinstance(obj, type) else obj.__class__
    mod = klass.__module__
    if mod is None or mod == "builtins":
        return klass.__name__
    return f"{mod}.{klass.__name__}"


def float_key(value):
    """returns the exact bit pattern of value as a float64, as an int

    Notes
    -----
    Distinct floats always give distinct keys, and -0.0 differs from 0.0.
    """
    return int(numpy.float64(value).view(numpy.int64))


def get_setting_from_environ(environ_var, params_types):
    """returns settings from an environment variable of the form
    'name1=value1,name2=value2'

    Parameters
    ----------
    environ_var
        name of the environment variable
    params_types
        {name: type}, each value is cast with its type. Items with other
        names, or without '=', are ignored. Items that cannot be cast are
        skipped with a warning.
    """
    result = {}
    for item in os.environ.get(environ_var, "").split(","):
        name, sep, value = item.partition("=")
        name = name.strip()
        if not sep or name not in params_types:
            continue
        cast = params_types[name]
        try:
            result[name] = cast(value.strip())
        except (TypeError, ValueError):
            warnings.warn(f"could not cast {name}={value} to {cast}, skipping")
    return result


def in_jupyter():
    """whether code is being executed within a jupyter notebook"""
    try:
        get_ipython  # noqa: F821, placed in builtins by IPython
    except NameError:
        return False
    return True
