"""Exceptions raised by the corridor engine and its collaborators."""


class CorridorError(Exception):
    """Base exception for the ride corridor engine"""


class PlaceNotFoundError(CorridorError):
    """Raised when a place name cannot be resolved to coordinates"""

    def __init__(self, name: str):
        super().__init__(f"Could not resolve place: {name!r}")
        self.name = name


class RoutingServiceError(CorridorError):
    """Raised when the road-routing service fails or returns an unusable route"""


class PolylineDecodeError(CorridorError, ValueError):
    """Raised when an encoded polyline string is truncated or malformed"""
