"""
Exceptions raised by the simulator.

Per-package errors (UnroutablePackage, InvalidCoordinate) are collected into
the tick report. StorageUnavailable aborts the tick. InvalidConfiguration
aborts the run before the first tick.
"""
import uuid
from typing import Optional


class SimulationError(Exception):
    """Base class for simulator errors."""
    pass


class InvalidCoordinate(SimulationError, ValueError):
    """Longitude or latitude outside the valid range."""
    pass


class InvalidConfiguration(SimulationError, ValueError):
    """Configuration values that make the simulation impossible to run."""
    pass


class UnroutablePackage(SimulationError):
    """A package cannot leave its current location under current thresholds."""

    def __init__(self, package_id: Optional[uuid.UUID], message: str):
        super().__init__(f"Package {package_id}: {message}")
        self.package_id = package_id


class StorageUnavailable(SimulationError):
    """The storage collaborator failed a read or write."""
    pass
