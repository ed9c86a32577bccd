"""Speaking coach video analysis backend."""

__version__ = "0.1.0"
