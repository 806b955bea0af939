"""RGB-D frame logs, live camera frame rings, ground-truth poses and run options."""

__version__ = "0.1.0"

__all__ = ["__version__"]