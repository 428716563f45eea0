import math

from numba import njit


@njit(cache=True)
def _decay_ratio(x, y):  # pragma: no cover
    # exp(-x) / (1 + y) - 1
    return (math.expm1(-x) - y) / (1.0 + y)


@njit(cache=True)
def _bracket(
    elapsed, size, tau, rate, transition, freq_j, freq_ihat, class_freq, sign, c
):  # pragma: no cover
    """the per-epoch antiderivative without its exp(-elapsed / size) factor"""
    x = rate * (2.0 * elapsed + tau)
    y = 2.0 * rate * size
    if not transition:
        return freq_j * _decay_ratio(x, y)

    return (
        (sign * freq_ihat - freq_j)
        + sign * freq_ihat * _decay_ratio(x * c, y * c)
        - freq_j * (1.0 - class_freq) * _decay_ratio(x, y)
    ) / class_freq


@njit(cache=True)
def integrate_epochs(
    boundaries,
    sizes,
    start,
    tau,
    rate,
    transition,
    freq_j,
    freq_ihat,
    class_freq,
    sign,
    c,
):  # pragma: no cover
    """integrates the coalescent weighted substitution probability

    Parameters
    ----------
    boundaries
        end times of all but the final epoch
    sizes
        population size of every epoch
    start
        the older of the two sampling times
    tau
        absolute difference of the two sampling times
    rate
        beta * mu
    transition
        whether the two states are in the same purine/pyrimidine class
    freq_j
        frequency of the second state
    freq_ihat
        frequency of the other state in the class of the first state
    class_freq
        frequency of the class of the first state
    sign
        -1.0 if the states are identical, 1.0 otherwise
    c
        class_freq * (kappa - 1) + 1

    Notes
    -----
    The kernels are evaluated at elapsed time since start. Each epoch
    contributes relative to its own start, so no exponential of an absolute
    time is formed.
    """
    num_epochs = sizes.shape[0]
    k = 0
    while k < num_epochs - 1 and boundaries[k] <= start:
        k += 1

    previous = 0.0
    survival = 1.0
    total = 0.0
    for i in range(k, num_epochs - 1):
        size = sizes[i]
        current = boundaries[i] - start
        decay = math.exp(-(current - previous) / size)
        upper = _bracket(
            current, size, tau, rate, transition, freq_j, freq_ihat, class_freq, sign, c
        )
        lower = _bracket(
            previous, size, tau, rate, transition, freq_j, freq_ihat, class_freq, sign, c
        )
        total += survival * (decay * upper - lower)
        survival *= decay
        previous = current

    total -= survival * _bracket(
        previous,
        sizes[num_epochs - 1],
        tau,
        rate,
        transition,
        freq_j,
        freq_ihat,
        class_freq,
        sign,
        c,
    )
    return total


@njit(cache=True)
def calc_hky_p(mprobs, kappa, beta, distance, result):  # pragma: no cover
    """fills result with the HKY substitution probabilities for distance

    mprobs are ordered A, C, G, T and beta scales the generator to a mean
    rate of 1.
    """
    if not (mprobs.shape[0] == result.shape[0] == result.shape[1] == 4):
        raise ValueError("all array dimensions must equal 4")

    scaled = beta * distance
    e_all = math.exp(-scaled)
    for row in range(4):
        other = (row + 2) % 4
        class_freq = mprobs[row] + mprobs[other]
        e_class = math.exp(-scaled * (class_freq * (kappa - 1.0) + 1.0))
        for column in range(4):
            p = mprobs[column]
            if row % 2 != column % 2:
                p *= 1.0 - e_all
            else:
                p += p * (1.0 / class_freq - 1.0) * e_all
                if row == column:
                    p += (class_freq - mprobs[column]) / class_freq * e_class
                else:
                    p -= mprobs[column] / class_freq * e_class
            result[row, column] = p
    return result
