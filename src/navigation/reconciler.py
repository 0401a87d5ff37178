"""Coordinate reconciliation between calibration sessions."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import numpy as np
from bosdyn.client.math_helpers import Quat

from src.navigation.waypoints import Vec3, Waypoint

logger = logging.getLogger(__name__)

ORIGIN: Vec3 = (0.0, 0.0, 0.0)


def quat_from_dict(raw: Optional[dict[str, Any]]) -> Optional[Quat]:
    """
    Build a unit Quat from a persisted {x, y, z, w} mapping.

    Returns None for missing, malformed or degenerate (zero-length)
    orientations.
    """
    if not raw:
        return None
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring malformed orientation: {raw!r}")
        return None
    try:
        components = np.array(
            [float(raw.get("w", 1.0)), float(raw.get("x", 0.0)),
             float(raw.get("y", 0.0)), float(raw.get("z", 0.0))]
        )
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed orientation: {raw!r}")
        return None
    if not np.all(np.isfinite(components)):
        logger.warning(f"Ignoring non-finite orientation: {raw!r}")
        return None
    norm = np.linalg.norm(components)
    if norm == 0.0:
        logger.warning("Ignoring zero-length orientation quaternion")
        return None
    w, x, y, z = components / norm
    return Quat(w=w, x=x, y=y, z=z)


def quat_to_dict(quat: Quat) -> dict[str, float]:
    return {"x": float(quat.x), "y": float(quat.y), "z": float(quat.z), "w": float(quat.w)}


def yaw_quat(angle: float) -> Quat:
    """Rotation of `angle` radians about the +Y (up) axis."""
    half = angle / 2.0
    return Quat(w=math.cos(half), x=0.0, y=math.sin(half), z=0.0)


def vec3_from_dict(raw: Optional[dict[str, Any]], default: Vec3 = ORIGIN) -> Vec3:
    """
    Read an {x, y, z} mapping; missing components are 0.

    Raises:
        ValueError: If raw is not a mapping or a component is not numeric
    """
    if not raw:
        return default
    if not isinstance(raw, dict):
        raise ValueError(f"Expected an {{x, y, z}} mapping, got {raw!r}")
    try:
        return (float(raw.get("x", 0.0)), float(raw.get("y", 0.0)), float(raw.get("z", 0.0)))
    except TypeError as e:
        raise ValueError(f"Non-numeric coordinate in {raw!r}") from e


def vec3_to_dict(vec: Vec3) -> dict[str, float]:
    return {"x": float(vec[0]), "y": float(vec[1]), "z": float(vec[2])}


@dataclass
class ReferenceAnchor:
    """
    Calibration pose treated as a session's coordinate-frame origin.

    Orientation is optional; legacy data without it reconciles by
    translation only.
    """

    position: Vec3 = ORIGIN
    orientation: Optional[Quat] = None

    @classmethod
    def canonical(cls) -> "ReferenceAnchor":
        """Fixed world-origin calibration (origin, identity orientation)."""
        return cls(position=ORIGIN, orientation=Quat())

    @classmethod
    def from_device_pose(cls, position: Vec3, orientation: Optional[Quat]) -> "ReferenceAnchor":
        """Calibration at the device's live pose."""
        return cls(position=tuple(float(c) for c in position), orientation=orientation)

    @classmethod
    def from_dict(cls, raw: Optional[dict[str, Any]]) -> Optional["ReferenceAnchor"]:
        """Parse a stored anchor; malformed anchors are treated as missing."""
        if not raw:
            return None
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring malformed reference anchor: {raw!r}")
            return None
        try:
            # Very old documents stored the anchor as a bare {x, y, z} point
            if "position" not in raw and "x" in raw:
                return cls(position=vec3_from_dict(raw))
            position = vec3_from_dict(raw.get("position"))
        except ValueError as e:
            logger.warning(f"Ignoring malformed reference anchor: {e}")
            return None
        return cls(position=position, orientation=quat_from_dict(raw.get("orientation")))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"position": vec3_to_dict(self.position)}
        if self.orientation is not None:
            data["orientation"] = quat_to_dict(self.orientation)
        return data


class FrameReconciler:
    """
    Rigid transform from a saved calibration frame into a live one.

    For each stored point p:
        reconciled = delta * (p - saved.position) + live.position
    where delta = live.orientation * inverse(saved.orientation), or the
    identity when either orientation is unknown. Quaternions rotate points
    actively in a right-handed, +Y-up frame, so a +90 degree yaw maps
    (1, 0, 0) to (0, 0, -1).
    """

    def __init__(
        self,
        saved_anchor: Optional[ReferenceAnchor],
        live_anchor: Optional[ReferenceAnchor],
    ) -> None:
        self.saved_anchor = saved_anchor
        self.live_anchor = live_anchor

        self._saved_origin = np.asarray(saved_anchor.position if saved_anchor else ORIGIN, dtype=float)
        self._live_origin = np.asarray(live_anchor.position if live_anchor else ORIGIN, dtype=float)

        saved_rot = saved_anchor.orientation if saved_anchor else None
        live_rot = live_anchor.orientation if live_anchor else None
        if saved_rot is not None and live_rot is not None:
            self.delta_rotation: Optional[Quat] = live_rot * saved_rot.inverse()
        else:
            self.delta_rotation = None

        logger.debug(
            f"Reconciler: saved origin={self._saved_origin.tolist()}, "
            f"live origin={self._live_origin.tolist()}, "
            f"rotation={'on' if self.delta_rotation is not None else 'translation-only'}"
        )

    @property
    def is_identity(self) -> bool:
        return self.delta_rotation is None and np.allclose(self._saved_origin, self._live_origin)

    def apply(self, point: Vec3) -> Vec3:
        """Map a single point from the saved frame into the live frame."""
        relative = np.asarray(point, dtype=float) - self._saved_origin
        if self.delta_rotation is not None:
            relative = np.asarray(
                self.delta_rotation.transform_point(relative[0], relative[1], relative[2]),
                dtype=float,
            )
        reconciled = relative + self._live_origin
        return (float(reconciled[0]), float(reconciled[1]), float(reconciled[2]))

    def apply_all(self, points: Iterable[Vec3]) -> list[Vec3]:
        return [self.apply(point) for point in points]

    def reconcile_waypoints(self, waypoints: Iterable[Waypoint]) -> list[Waypoint]:
        """Return copies of the waypoints with positions in the live frame."""
        return [
            Waypoint(id=wp.id, position=self.apply(wp.position), rotation=wp.rotation)
            for wp in waypoints
        ]
