__all__ = ["patterns"]
