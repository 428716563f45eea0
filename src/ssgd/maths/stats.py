"""Model selection and bootstrap summary statistics"""

import numpy


def aic(lnL, nfp, sample_size=None):
    """returns Aikake Information Criterion

    Parameters
    ----------
    lnL
        the maximum log-likelihood
    nfp
        the number of free parameters in the model
    sample_size
        if provided, the second order AIC is returned
    """
    if sample_size is None:
        correction = 1
    else:
        if not sample_size > nfp + 1:
            raise ValueError(
                f"sample_size {sample_size} too small for {nfp} free parameters"
            )
        correction = sample_size / (sample_size - nfp - 1)

    return -2 * lnL + 2 * nfp * correction


def bic(lnL, nfp, sample_size):
    """returns Bayesian Information Criterion"""
    return -2 * lnL + nfp * numpy.log(sample_size)


def percentile_interval(values, alpha=0.05):
    """returns the (alpha/2, 1 - alpha/2) quantiles of values"""
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), not {alpha}")
    values = numpy.asarray(values, dtype=float)
    if values.size == 0:
        raise ValueError("no values")
    lower, upper = numpy.quantile(values, [alpha / 2, 1 - alpha / 2])
    return float(lower), float(upper)
