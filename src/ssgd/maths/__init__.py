__all__ = ["optimisers", "scipy_optimisers", "simannealingoptimiser", "stats"]
