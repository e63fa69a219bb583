"""Location context services."""

from .context import LocationContext, LocationContextProvider

__all__ = ["LocationContext", "LocationContextProvider"]
