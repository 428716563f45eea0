__all__ = ["alphabet", "patterns", "taxa"]
