"""Route Viewer - Interactive visualization of mapped sites and planned routes."""

from src.route_viewer.viewer import WaypointInfo, compute_edge_lines, create_figure

__all__ = [
    "WaypointInfo",
    "compute_edge_lines",
    "create_figure",
]
