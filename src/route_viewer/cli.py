"""Command-line interface for the route viewer."""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from src.config import load_settings, make_store
from src.logging_config import setup_logging
from src.navigation.errors import NavigationError
from src.navigation.planner import Route
from src.navigation.windower import PathWindow
from src.route_viewer.viewer import create_figure, export_html, show_figure
from src.session.navigation_session import NavigationSession

logger = logging.getLogger(__name__)


async def _print_status(message: str) -> None:
    print(message)


async def prepare_session(
    session: NavigationSession,
    destination: Optional[str],
    live_position: tuple[float, float, float],
) -> tuple[Optional[Route], Optional[PathWindow]]:
    """
    Load the site at the canonical origin and, if asked, plan a route.

    Returns:
        (route, window), both None when no destination was given or
        planning failed
    """
    session.calibrate()
    try:
        loaded = await session.load(_print_status)
    finally:
        await session.store.close()

    if not loaded or destination is None:
        return None, None

    try:
        session.select_destination(destination)
        route = session.start_navigation(live_position)
    except NavigationError as e:
        print(f"Warning: {e}", file=sys.stderr)
        return None, None

    return route, session.tick(live_position)


def main() -> None:
    """Main entry point for route viewer CLI."""
    parser = argparse.ArgumentParser(
        description="Route Viewer - Interactive visualization of a mapped building",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # View the site stored in ./data
  uv run python -m src.route_viewer --data-dir data/

  # Plan a route to a room from a given position
  uv run python -m src.route_viewer --destination "Room 101" --from 0 0 0

  # Read from the document service and export to HTML
  uv run python -m src.route_viewer --url https://nav.example.org --export site.html
        """,
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Directory holding the JSON documents (overrides NAV_DATA_DIR)",
    )
    parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="Base URL of the document service (overrides NAV_STORE_URL)",
    )
    parser.add_argument(
        "--destination",
        type=str,
        default=None,
        help="Room to plan a route to",
    )
    parser.add_argument(
        "--from",
        dest="live_position",
        type=float,
        nargs=3,
        metavar=("X", "Y", "Z"),
        default=(0.0, 0.0, 0.0),
        help="Live position to plan from (default: origin)",
    )
    parser.add_argument(
        "--export",
        type=str,
        metavar="FILE",
        help="Export to HTML file instead of opening browser",
    )
    parser.add_argument(
        "--no-edges",
        action="store_true",
        help="Hide edge connections",
    )
    parser.add_argument(
        "--show-labels",
        action="store_true",
        help="Show ids on all waypoints (default: only rooms)",
    )
    parser.add_argument(
        "--title",
        type=str,
        default=None,
        help="Custom title for the visualization",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    setup_logging()
    if args.verbose:
        logging.getLogger("src").setLevel(logging.DEBUG)

    settings = load_settings()
    if args.url:
        settings.store_url = args.url
    if args.data_dir:
        settings.store_url = None
        settings.data_dir = args.data_dir

    session = NavigationSession(make_store(settings), settings)
    live_position = tuple(args.live_position)
    route, window = asyncio.run(prepare_session(session, args.destination, live_position))

    if len(session.waypoints) == 0:
        print("Error: no waypoints found", file=sys.stderr)
        sys.exit(1)

    title = args.title or f"Waypoint Map ({len(session.waypoints)} waypoints)"
    fig = create_figure(
        session.waypoints,
        session.graph,
        session.room_mapping,
        title=title,
        route=route,
        window=window,
        live_position=live_position if route is not None else None,
        show_edges=not args.no_edges,
        show_waypoint_labels=args.show_labels,
    )

    if args.export:
        logger.info(f"Exporting to {args.export}")
        export_html(fig, args.export)
        print(f"Exported to {args.export}")
    else:
        logger.info("Opening in browser")
        show_figure(fig)


if __name__ == "__main__":
    main()
