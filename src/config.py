"""
Runtime configuration for the wayfinding core.

Values come from environment variables, optionally loaded from a `.env`
file in the project root:

    NAV_STORE_URL            Base URL of the HTTP document service
    NAV_DATA_DIR             Directory for the JSON-file document store
    NAV_WINDOW_SIZE          Waypoints revealed ahead of the user
    NAV_PROXIMITY_THRESHOLD  Distance (m) at which the destination is revealed
    NAV_FLOOR_OFFSET         Drop (m) of route segments below waypoint centres
    NAV_PLACEMENT_DISTANCE   Distance (m) in front of the device new waypoints go
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from src.store.backends import DocumentStore, HttpDocumentStore, JsonFileStore

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
DEFAULT_DATA_DIR = os.path.join(PROJECT_ROOT, "data")

DEFAULT_WINDOW_SIZE = 3
DEFAULT_PROXIMITY_THRESHOLD = 2.0    # metres
DEFAULT_FLOOR_OFFSET = 0.05          # metres below the waypoint centre
DEFAULT_PLACEMENT_DISTANCE = 1.0     # metres in front of the device


@dataclass
class NavigationSettings:
    """Tunable parameters shared by the mapping and navigation sessions."""

    store_url: Optional[str] = None
    data_dir: str = DEFAULT_DATA_DIR
    window_size: int = DEFAULT_WINDOW_SIZE
    proximity_threshold: float = DEFAULT_PROXIMITY_THRESHOLD
    floor_offset: float = DEFAULT_FLOOR_OFFSET
    placement_distance: float = DEFAULT_PLACEMENT_DISTANCE


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def load_settings(env_file: Optional[str] = None) -> NavigationSettings:
    """
    Build settings from the environment.

    Args:
        env_file: Optional path to a .env file. When omitted, python-dotenv
            searches for one starting from the current directory.

    Returns:
        NavigationSettings with defaults for anything unset or invalid
    """
    load_dotenv(env_file)

    return NavigationSettings(
        store_url=os.getenv("NAV_STORE_URL") or None,
        data_dir=os.getenv("NAV_DATA_DIR") or DEFAULT_DATA_DIR,
        window_size=_env_int("NAV_WINDOW_SIZE", DEFAULT_WINDOW_SIZE),
        proximity_threshold=_env_float("NAV_PROXIMITY_THRESHOLD", DEFAULT_PROXIMITY_THRESHOLD),
        floor_offset=_env_float("NAV_FLOOR_OFFSET", DEFAULT_FLOOR_OFFSET),
        placement_distance=_env_float("NAV_PLACEMENT_DISTANCE", DEFAULT_PLACEMENT_DISTANCE),
    )


def make_store(settings: NavigationSettings) -> DocumentStore:
    """Pick the HTTP store when a service URL is configured, else JSON files."""
    if settings.store_url:
        logger.info(f"Using HTTP document store at {settings.store_url}")
        return HttpDocumentStore(settings.store_url)
    logger.info(f"Using JSON-file document store in {settings.data_dir}")
    return JsonFileStore(settings.data_dir)
