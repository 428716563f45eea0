__all__ = [
    "checkpointing",
    "deserialise",
    "io",
    "misc",
    "progress_display",
]
