"""Exceptions raised by the simulation commands."""


class SimulationError(Exception):
    """Base class for command failures surfaced to callers."""


class AlreadyRunningError(SimulationError):
    """Start was issued while a run is still in progress."""


class InvalidWindowError(SimulationError):
    """The prediction window is unknown, expired, closed, or already used."""
