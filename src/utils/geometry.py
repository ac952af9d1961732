"""Geometric operations for raster drawing.

Provides:
    - 2D affine matrices (3×3 homogeneous): translate, rotate, scale, compose
    - The translate → rotate → translate pivot pattern used by every rotated seed
    - Cubic and quadratic Bézier flattening by adaptive subdivision
    - Rectangle corners for image and fill placement

Used by:
    - RasterSurface: current transform and path flattening
    - Glyph rendering: curve commands from font outlines
    - Image placement: pixel-centre corrected warp matrices

All coordinates are canvas pixels, origin top-left, +Y down. A pixel (i, j)
covers [i, i+1) × [j, j+1); its centre is (i + 0.5, j + 0.5).

Rotation angles are radians here; degrees are converted by the callers
(``math.radians``) at the seed boundary.
"""

import math
from typing import Sequence

import numpy as np


# ============================================================================
# AFFINE MATRICES
# ============================================================================

def identity() -> np.ndarray:
    """3×3 identity transform (float64)."""
    return np.eye(3, dtype=np.float64)


def translation(tx: float, ty: float) -> np.ndarray:
    """Translation by (tx, ty)."""
    m = identity()
    m[0, 2] = tx
    m[1, 2] = ty
    return m


def rotation(angle_rad: float) -> np.ndarray:
    """Rotation by ``angle_rad`` (clockwise on screen, since +Y points down)."""
    c, s = math.cos(angle_rad), math.sin(angle_rad)
    return np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


def scaling(sx: float, sy: float) -> np.ndarray:
    """Axis-aligned scale."""
    m = identity()
    m[0, 0] = sx
    m[1, 1] = sy
    return m


def compose(*matrices: np.ndarray) -> np.ndarray:
    """Compose transforms left to right, like successive context calls.

    ``compose(A, B)`` applies B first to a point, then A; this matches
    ``ctx.translate(...)`` followed by ``ctx.rotate(...)``.
    """
    result = identity()
    for m in matrices:
        result = result @ m
    return result


def rotation_about(cx: float, cy: float, angle_rad: float) -> np.ndarray:
    """translate(c) → rotate(angle) → translate(-c)."""
    return compose(translation(cx, cy), rotation(angle_rad), translation(-cx, -cy))


def apply_to_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Transform an (N, 2) array of points."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return points @ matrix[:2, :2].T + matrix[:2, 2]


def pixel_warp_matrix(matrix: np.ndarray) -> np.ndarray:
    """Convert a continuous-coordinate transform to a 2×3 cv2.warpAffine matrix.

    cv2 samples at integer indices, so the transform is conjugated by the
    half-pixel offset: ``index_dst = M (index_src + 0.5) - 0.5``.
    """
    m = compose(translation(-0.5, -0.5), matrix, translation(0.5, 0.5))
    return m[:2, :].astype(np.float64)


# ============================================================================
# BÉZIER FLATTENING
# ============================================================================

def _chord_distance(p: np.ndarray, a: np.ndarray, chord: np.ndarray, chord_len: float) -> float:
    v = p - a
    return abs(v[0] * chord[1] - v[1] * chord[0]) / chord_len


def bezier_cubic_polyline(
    p1: Sequence[float],
    p2: Sequence[float],
    p3: Sequence[float],
    p4: Sequence[float],
    max_err_px: float = 0.25,
    max_depth: int = 12
) -> np.ndarray:
    """Flatten a cubic Bézier to a polyline via adaptive subdivision.

    Parameters
    ----------
    p1, p2, p3, p4 : sequence of float
        Control points (x, y) in px
    max_err_px : float
        Maximum allowed distance of the control points from the chord, px
    max_depth : int
        Maximum recursion depth, default 12

    Returns
    -------
    np.ndarray
        Polyline vertices, shape (N, 2), N ≥ 2, first == p1 and last == p4
    """
    def subdivide(q1, q2, q3, q4, depth):
        if depth >= max_depth:
            return [q1, q4]

        chord = q4 - q1
        chord_len = float(np.hypot(chord[0], chord[1])) + 1e-12
        d2 = _chord_distance(q2, q1, chord, chord_len)
        d3 = _chord_distance(q3, q1, chord, chord_len)
        if max(d2, d3) <= max_err_px:
            return [q1, q4]

        # De Casteljau split at t=0.5
        q12 = (q1 + q2) / 2.0
        q23 = (q2 + q3) / 2.0
        q34 = (q3 + q4) / 2.0
        q123 = (q12 + q23) / 2.0
        q234 = (q23 + q34) / 2.0
        q1234 = (q123 + q234) / 2.0

        left = subdivide(q1, q12, q123, q1234, depth + 1)
        right = subdivide(q1234, q234, q34, q4, depth + 1)
        return left[:-1] + right

    pts = subdivide(
        np.asarray(p1, dtype=np.float64),
        np.asarray(p2, dtype=np.float64),
        np.asarray(p3, dtype=np.float64),
        np.asarray(p4, dtype=np.float64),
        depth=0,
    )
    return np.stack(pts, axis=0)


def bezier_quadratic_polyline(
    p1: Sequence[float],
    ctrl: Sequence[float],
    p2: Sequence[float],
    max_err_px: float = 0.25,
    max_depth: int = 12
) -> np.ndarray:
    """Flatten a quadratic Bézier by degree elevation to a cubic."""
    p1 = np.asarray(p1, dtype=np.float64)
    ctrl = np.asarray(ctrl, dtype=np.float64)
    p2 = np.asarray(p2, dtype=np.float64)
    c1 = p1 + (2.0 / 3.0) * (ctrl - p1)
    c2 = p2 + (2.0 / 3.0) * (ctrl - p2)
    return bezier_cubic_polyline(p1, c1, c2, p2, max_err_px=max_err_px, max_depth=max_depth)


def circle_polyline(cx: float, cy: float, radius: float, max_err_px: float = 0.25) -> np.ndarray:
    """Closed polygon approximating a circle within ``max_err_px`` (sagitta)."""
    # Sagitta of a chord spanning angle θ: r (1 - cos(θ/2)) <= err
    ratio = max(-1.0, min(1.0, 1.0 - max_err_px / max(radius, 1e-9)))
    step = 2.0 * math.acos(ratio) if ratio < 1.0 else 2.0 * math.pi / 16
    n = int(np.clip(math.ceil(2.0 * math.pi / max(step, 1e-6)), 16, 4096))
    theta = np.linspace(0.0, 2.0 * math.pi, n, endpoint=False)
    return np.stack([cx + radius * np.cos(theta), cy + radius * np.sin(theta)], axis=1)


def rect_corners(x: float, y: float, w: float, h: float) -> np.ndarray:
    """Corners of an axis-aligned rectangle, clockwise from top-left."""
    return np.array([
        [x, y],
        [x + w, y],
        [x + w, y + h],
        [x, y + h],
    ], dtype=np.float64)
