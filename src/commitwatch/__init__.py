"""commitwatch - continuous check, bisect and promote loop for a development branch."""

__version__ = "0.1.0"
