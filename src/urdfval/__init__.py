"""urdfval: geometric validation of articulated robot descriptions."""

__version__ = "0.1.0"
