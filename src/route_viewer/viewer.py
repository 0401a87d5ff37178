"""Plotly-based interactive visualization of a mapped site and its route."""

from dataclasses import dataclass
from typing import Optional

import plotly.graph_objects as go

from src.navigation.graph import AdjacencyGraph
from src.navigation.planner import Route
from src.navigation.waypoints import Vec3, WaypointStore
from src.navigation.windower import PathWindow, SegmentKind

SEGMENT_COLORS = {
    SegmentKind.NORMAL: "rgb(0, 255, 136)",
    SegmentKind.FINAL_APPROACH: "rgb(255, 0, 0)",
}


@dataclass
class WaypointInfo:
    """Extracted waypoint metadata for display."""

    id: str
    position: Vec3
    room: Optional[str] = None
    on_route: bool = False


def to_plot_coords(position: Vec3) -> tuple[float, float, float]:
    """AR frames are +Y up; plotly scenes are +Z up."""
    return (position[0], position[2], position[1])


def extract_waypoint_info(
    waypoints: WaypointStore,
    room_mapping: dict[str, str],
    route: Optional[Route] = None,
) -> list[WaypointInfo]:
    route_ids = set(route.waypoint_ids) if route else set()
    return [
        WaypointInfo(
            id=wp.id,
            position=wp.position,
            room=room_mapping.get(wp.id),
            on_route=wp.id in route_ids,
        )
        for wp in waypoints
    ]


def compute_edge_lines(
    graph: AdjacencyGraph,
    positions: dict[str, Vec3],
) -> list[tuple[Vec3, Vec3]]:
    """
    Line segments for every connection, drawn once per waypoint pair.

    Edges whose endpoints have no position are skipped.
    """
    lines: list[tuple[Vec3, Vec3]] = []
    seen: set[frozenset[str]] = set()

    for source, edge in graph.edges():
        pair = frozenset((source, edge.node))
        if pair in seen:
            continue
        if source not in positions or edge.node not in positions:
            continue
        seen.add(pair)
        lines.append((positions[source], positions[edge.node]))

    return lines


def create_figure(
    waypoints: WaypointStore,
    graph: AdjacencyGraph,
    room_mapping: dict[str, str],
    title: str = "Waypoint Map",
    route: Optional[Route] = None,
    window: Optional[PathWindow] = None,
    live_position: Optional[Vec3] = None,
    show_edges: bool = True,
    show_waypoint_labels: bool = False,
) -> go.Figure:
    """
    Create interactive 3D Plotly figure of the site.

    Args:
        waypoints: Waypoints with positions in a common frame
        graph: Adjacency graph
        room_mapping: Waypoint id -> room label
        title: Figure title
        route: Planned route to overlay
        window: Current path window to overlay (segments and direction markers)
        live_position: User position to mark
        show_edges: Whether to show edge lines
        show_waypoint_labels: Whether to label every waypoint with its id

    Returns:
        Plotly Figure object ready for display
    """
    infos = extract_waypoint_info(waypoints, room_mapping, route)
    positions = waypoints.positions()

    fig = go.Figure()

    if show_edges:
        _add_edges_to_figure(fig, compute_edge_lines(graph, positions))

    regular = [info for info in infos if info.room is None]
    rooms = [info for info in infos if info.room is not None]

    if regular:
        _add_waypoints_to_figure(
            fig, regular, color="rgb(65, 105, 225)", name="Waypoints",
            marker_size=5, show_labels=show_waypoint_labels,
        )
    if rooms:
        _add_waypoints_to_figure(
            fig, rooms, color="rgb(50, 205, 50)", name="Rooms",
            marker_size=10, show_labels=True,
        )

    if route is not None:
        _add_route_to_figure(fig, route, positions)

    if window is not None and window.segments:
        _add_window_to_figure(fig, window)

    if live_position is not None:
        x, y, z = to_plot_coords(live_position)
        fig.add_trace(
            go.Scatter3d(
                x=[x], y=[y], z=[z],
                mode="markers",
                marker=dict(size=9, color="black", symbol="diamond"),
                hovertext=["You are here"],
                hoverinfo="text",
                name="Live Position",
            )
        )

    fig.update_layout(
        title=title,
        scene=dict(
            xaxis_title="X (m)",
            yaxis_title="Z (m)",
            zaxis_title="Height (m)",
            aspectmode="data",
        ),
        showlegend=True,
        legend=dict(
            yanchor="top",
            y=0.99,
            xanchor="left",
            x=0.01,
            itemclick="toggle",
            itemdoubleclick="toggleothers",
        ),
        margin=dict(l=0, r=0, t=80, b=0),
        updatemenus=_create_toggle_buttons(fig),
    )

    return fig


def _create_toggle_buttons(fig: go.Figure) -> list[dict]:
    """
    Create a dropdown menu for visibility control.

    Uses explicit visibility arrays since Plotly doesn't support "toggle".
    """
    trace_names = [trace.name for trace in fig.data]
    num_traces = len(trace_names)

    buttons = [
        dict(label="All Visible", method="restyle", args=[{"visible": [True] * num_traces}]),
    ]
    for i, name in enumerate(trace_names):
        visible = ["legendonly"] * num_traces
        visible[i] = True
        buttons.append(dict(label=f"Only {name}", method="restyle", args=[{"visible": visible}]))

    return [
        dict(
            type="dropdown",
            direction="down",
            buttons=buttons,
            pad={"r": 10, "t": 10},
            showactive=True,
            x=0.0,
            xanchor="left",
            y=1.15,
            yanchor="top",
        )
    ]


def _add_waypoints_to_figure(
    fig: go.Figure,
    infos: list[WaypointInfo],
    color: str,
    name: str,
    marker_size: int = 8,
    show_labels: bool = True,
) -> None:
    """Add waypoint markers with hover information."""
    coords = [to_plot_coords(info.position) for info in infos]

    hover_texts = []
    display_labels = []
    for info in infos:
        display_name = info.room or info.id
        display_labels.append(display_name if show_labels else "")

        text = f"<b>{display_name}</b><br>ID: {info.id}<br>"
        text += f"Position: ({info.position[0]:.2f}, {info.position[1]:.2f}, {info.position[2]:.2f})"
        if info.on_route:
            text += "<br>On route"
        hover_texts.append(text)

    fig.add_trace(
        go.Scatter3d(
            x=[c[0] for c in coords],
            y=[c[1] for c in coords],
            z=[c[2] for c in coords],
            mode="markers+text" if show_labels else "markers",
            marker=dict(size=marker_size, color=color, opacity=0.9),
            text=display_labels,
            textposition="top center",
            textfont=dict(size=12, color="black"),
            hovertext=hover_texts,
            hoverinfo="text",
            name=name,
        )
    )


def _add_edges_to_figure(fig: go.Figure, edge_lines: list[tuple[Vec3, Vec3]]) -> None:
    """Add edge lines to figure."""
    # None separators break the polyline between edges
    x: list[float | None] = []
    y: list[float | None] = []
    z: list[float | None] = []

    for start, end in edge_lines:
        (sx, sy, sz), (ex, ey, ez) = to_plot_coords(start), to_plot_coords(end)
        x.extend([sx, ex, None])
        y.extend([sy, ey, None])
        z.extend([sz, ez, None])

    fig.add_trace(
        go.Scatter3d(
            x=x, y=y, z=z,
            mode="lines",
            line=dict(color="rgb(150, 150, 150)", width=2),
            hoverinfo="skip",
            name="Edges",
        )
    )


def _add_route_to_figure(fig: go.Figure, route: Route, positions: dict[str, Vec3]) -> None:
    coords = [to_plot_coords(positions[wid]) for wid in route.waypoint_ids if wid in positions]
    fig.add_trace(
        go.Scatter3d(
            x=[c[0] for c in coords],
            y=[c[1] for c in coords],
            z=[c[2] for c in coords],
            mode="lines",
            line=dict(color="rgb(255, 165, 0)", width=6),
            hoverinfo="skip",
            name=f"Route ({route.distance:.1f}m)",
        )
    )


def _add_window_to_figure(fig: go.Figure, window: PathWindow) -> None:
    """Add the revealed segments, stopping at their direction markers like the AR view."""
    for kind in SegmentKind:
        segments = [s for s in window.segments if s.kind == kind]
        if not segments:
            continue

        x: list[float | None] = []
        y: list[float | None] = []
        z: list[float | None] = []
        for segment in segments:
            (sx, sy, sz), (mx, my, mz) = to_plot_coords(segment.start), to_plot_coords(segment.midpoint)
            x.extend([sx, mx, None])
            y.extend([sy, my, None])
            z.extend([sz, mz, None])

        label = "Visible Path" if kind == SegmentKind.NORMAL else "Final Approach"
        fig.add_trace(
            go.Scatter3d(
                x=x, y=y, z=z,
                mode="lines",
                line=dict(color=SEGMENT_COLORS[kind], width=8),
                hoverinfo="skip",
                name=label,
            )
        )

        mids = [to_plot_coords(s.midpoint) for s in segments]
        directions = [to_plot_coords(s.direction) for s in segments]
        fig.add_trace(
            go.Cone(
                x=[m[0] for m in mids],
                y=[m[1] for m in mids],
                z=[m[2] for m in mids],
                u=[d[0] for d in directions],
                v=[d[1] for d in directions],
                w=[d[2] for d in directions],
                sizemode="absolute",
                sizeref=0.3,
                anchor="tail",
                colorscale=[[0, SEGMENT_COLORS[kind]], [1, SEGMENT_COLORS[kind]]],
                showscale=False,
                hoverinfo="skip",
                name=f"{label} Arrows",
                showlegend=True,
            )
        )


def show_figure(fig: go.Figure) -> None:
    """Display figure in browser."""
    fig.show()


def export_html(fig: go.Figure, output_path: str) -> None:
    """Export figure as standalone HTML file."""
    fig.write_html(output_path, include_plotlyjs=True, full_html=True)
