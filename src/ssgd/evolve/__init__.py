__all__ = [
    "bootstrap",
    "composite_likelihood",
    "demography",
    "integrator",
    "integrator_numba",
    "likelihood_function",
    "simulate",
    "site_rates",
    "substitution_model",
    "tip_states",
]
