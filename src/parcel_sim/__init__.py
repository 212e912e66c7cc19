"""
Parcel Simulator v1

Discrete-tick simulation of packages moving through a logistics network by
land or air freight. Decides freight mode per leg and advances each package's
transition history.
"""

__version__ = "1.0.0"
