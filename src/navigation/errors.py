"""Recoverable navigation failures.

None of these are fatal: callers degrade to a "navigation unavailable"
state and tell the user what to do next.
"""


class NavigationError(Exception):
    """Base class for recoverable navigation failures."""


class CalibrationRequiredError(NavigationError):
    """Planning or reconciliation attempted before a reference anchor exists."""

    def __init__(self, message: str = "Please calibrate your position first") -> None:
        super().__init__(message)


class UnknownDestinationError(NavigationError):
    """No waypoint is mapped to the requested room."""


class NoStartWaypointError(NavigationError):
    """No waypoint is available to start the route from."""


class UnreachableDestinationError(NavigationError):
    """The graph has no path from the start waypoint to the destination."""
