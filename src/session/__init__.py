"""Mapping and navigation sessions built on the navigation core."""

from src.session.lifecycle import NodeLifecycleManager
from src.session.mapping_session import MappingSession
from src.session.navigation_session import NavigationSession

__all__ = ["MappingSession", "NavigationSession", "NodeLifecycleManager"]
