"""Raster surface with a 2D drawing-context style API.

The surface owns an (H, W, 4) uint8 RGBA buffer and a current affine
transform. Drawing calls take user-space coordinates; the transform is applied
before rasterization, exactly like translate/rotate/resetTransform on a 2D
canvas context.

Architecture:
    - Paths (Path2D) hold move/line/cubic/quadratic/close commands and are
      flattened to polylines at ``curve_tolerance_px``
    - Fills rasterize device-space polygons by pixel-centre inclusion
      (skimage.draw.polygon); antialiasing fills a 4×4 supersampled binary
      mask and averages each block down to 8-bit coverage
    - Nonzero fill: signed per-contour coverage accumulation; even-odd fill:
      per-sample parity over all contours
    - Strokes are outlined with shapely buffers (mitre joins, flat caps) and
      then filled
    - Images are warped with cv2.warpAffine in premultiplied alpha (edge
      replicate) and clipped by the coverage of their destination quad, so
      image edges are as sharp as polygon edges
    - Pre-rendered coverage layers are warped and composited source-over

Invariants:
    - Pixel (i, j) covers [i, i+1) × [j, j+1); samples sit at pixel centres,
      so integer-aligned rects cover whole pixels exactly
    - Fully covered pixels receive the exact fill color
    - put_pixels ignores the transform (like putImageData)
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from shapely.geometry import LinearRing, LineString, Polygon
from shapely.ops import unary_union
from skimage.draw import polygon as polygon_pixels

from src.utils import color as color_utils, geometry, validators

logger = logging.getLogger(__name__)

Color = Union[str, Tuple[int, ...]]

# Supersampling factor per axis for antialiased coverage
_SUPERSAMPLE = 4


class Path2D:
    """Vector path built from move/line/curve/close commands."""

    def __init__(self):
        self.commands: List[Tuple] = []

    def move_to(self, x: float, y: float) -> None:
        self.commands.append(('M', float(x), float(y)))

    def line_to(self, x: float, y: float) -> None:
        self.commands.append(('L', float(x), float(y)))

    def bezier_curve_to(
        self,
        c1x: float, c1y: float,
        c2x: float, c2y: float,
        x: float, y: float
    ) -> None:
        self.commands.append(('C', float(c1x), float(c1y), float(c2x), float(c2y), float(x), float(y)))

    def quadratic_curve_to(self, cx: float, cy: float, x: float, y: float) -> None:
        self.commands.append(('Q', float(cx), float(cy), float(x), float(y)))

    def close_path(self) -> None:
        self.commands.append(('Z',))

    def __len__(self) -> int:
        return len(self.commands)

    def subpaths(self, tolerance: float = 0.25) -> List[Tuple[np.ndarray, bool]]:
        """Flatten to [(points (N, 2), closed), ...] in user space.

        A line or curve without a current point starts a new subpath at its
        first point, and closing a subpath moves the current point back to its
        start.
        """
        result = []
        current: List[np.ndarray] = []
        start = None
        closed = False

        def flush():
            if len(current) >= 2:
                result.append((np.stack(current, axis=0), closed))

        for cmd in self.commands:
            op = cmd[0]
            if op == 'M':
                flush()
                start = np.array(cmd[1:3], dtype=np.float64)
                current = [start]
                closed = False
            elif op == 'L':
                pt = np.array(cmd[1:3], dtype=np.float64)
                if not current:
                    start = pt
                    current = [pt]
                    closed = False
                else:
                    current.append(pt)
            elif op in ('C', 'Q'):
                end = np.array(cmd[-2:], dtype=np.float64)
                if not current:
                    first = np.array(cmd[1:3], dtype=np.float64)
                    start = first
                    current = [first]
                    closed = False
                p0 = current[-1]
                if op == 'C':
                    pts = geometry.bezier_cubic_polyline(
                        p0, cmd[1:3], cmd[3:5], end, max_err_px=tolerance
                    )
                else:
                    pts = geometry.bezier_quadratic_polyline(
                        p0, cmd[1:3], end, max_err_px=tolerance
                    )
                current.extend(pts[1:])
            elif op == 'Z':
                if current:
                    closed = True
                    flush()
                    current = [start]
                    closed = False
            else:
                raise ValueError(f"Unknown path command: {op}")

        flush()
        return result


def _signed_area(points: np.ndarray) -> float:
    x, y = points[:, 0], points[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


class RasterSurface:
    """Mutable RGBA raster plus a current transform.

    Parameters
    ----------
    width, height : int
        Surface size in pixels
    antialias : bool
        Anti-aliased polygon edges, default True
    curve_tolerance_px : float
        Maximum Bézier flattening error, default 0.25 px
    background : Color
        Initial fill, default opaque white
    """

    def __init__(
        self,
        width: int,
        height: int,
        antialias: bool = True,
        curve_tolerance_px: float = 0.25,
        background: Color = color_utils.WHITE
    ):
        if width < 1 or height < 1:
            raise ValueError(f"Surface size must be positive, got {width}×{height}")
        self.width = int(width)
        self.height = int(height)
        self.antialias = antialias
        self.curve_tolerance_px = curve_tolerance_px
        self.pixels = np.empty((self.height, self.width, 4), dtype=np.uint8)
        self._transform = geometry.identity()
        self.clear(background)

    # ------------------------------------------------------------------
    # Transform state
    # ------------------------------------------------------------------

    @property
    def transform(self) -> np.ndarray:
        return self._transform.copy()

    def set_transform(self, matrix: np.ndarray) -> None:
        self._transform = np.asarray(matrix, dtype=np.float64).copy()

    def translate(self, tx: float, ty: float) -> None:
        self._transform = self._transform @ geometry.translation(tx, ty)

    def rotate(self, angle_rad: float) -> None:
        self._transform = self._transform @ geometry.rotation(angle_rad)

    def scale(self, sx: float, sy: float) -> None:
        self._transform = self._transform @ geometry.scaling(sx, sy)

    def reset_transform(self) -> None:
        self._transform = geometry.identity()

    def _is_identity(self) -> bool:
        return np.allclose(self._transform, geometry.identity())

    # ------------------------------------------------------------------
    # Whole-buffer operations
    # ------------------------------------------------------------------

    def clear(self, color: Color = color_utils.WHITE) -> None:
        """Fill the whole buffer with ``color`` (ignores the transform)."""
        self.pixels[...] = np.asarray(color_utils.parse_color(color), dtype=np.uint8)

    def put_pixels(self, rgba: np.ndarray, x: int = 0, y: int = 0) -> None:
        """Copy an RGBA buffer at (x, y), clipped to the surface, no blending."""
        rgba = validators.validate_rgba(rgba, "Pixel buffer")
        h, w = rgba.shape[:2]
        x0, y0 = max(0, x), max(0, y)
        x1, y1 = min(self.width, x + w), min(self.height, y + h)
        if x1 <= x0 or y1 <= y0:
            return
        self.pixels[y0:y1, x0:x1] = rgba[y0 - y:y1 - y, x0 - x:x1 - x]

    def get_pixels(self) -> np.ndarray:
        """Copy of the RGBA buffer."""
        return self.pixels.copy()

    # ------------------------------------------------------------------
    # Fills
    # ------------------------------------------------------------------

    def _rasterize(self, polygons: Sequence[np.ndarray]) -> np.ndarray:
        """Even-odd coverage of device-space polygons, uint8 (H, W)."""
        ss = _SUPERSAMPLE if self.antialias else 1
        inside = np.zeros((self.height * ss, self.width * ss), dtype=bool)
        for poly in polygons:
            if len(poly) < 3:
                continue
            # Sample index i sits at continuous coordinate (i + 0.5) / ss
            pts = np.asarray(poly, dtype=np.float64) * ss - 0.5
            rr, cc = polygon_pixels(pts[:, 1], pts[:, 0], shape=inside.shape)
            inside[rr, cc] ^= True

        if ss == 1:
            return inside.astype(np.uint8) * 255
        blocks = inside.reshape(self.height, ss, self.width, ss).sum(axis=(1, 3))
        return np.rint(blocks * (255.0 / (ss * ss))).astype(np.uint8)

    def _coverage(self, polygons: Sequence[np.ndarray], fill_rule: str) -> np.ndarray:
        if fill_rule == 'evenodd':
            return self._rasterize(polygons)
        if fill_rule != 'nonzero':
            raise ValueError(f"Unknown fill rule: {fill_rule}. Use 'nonzero' or 'evenodd'.")

        polygons = [p for p in polygons if len(p) >= 3]
        if len(polygons) == 1:
            return self._rasterize(polygons)

        # Winding number as signed sum of per-contour coverage
        winding = np.zeros((self.height, self.width), dtype=np.int32)
        for poly in polygons:
            area = _signed_area(poly)
            if area == 0.0:
                continue
            sign = 1 if area > 0 else -1
            winding += sign * self._rasterize([poly]).astype(np.int32)
        return np.clip(np.abs(winding), 0, 255).astype(np.uint8)

    def fill_polygons(
        self,
        polygons: Sequence[np.ndarray],
        color: Color = color_utils.BLACK,
        fill_rule: str = 'nonzero'
    ) -> None:
        """Fill user-space polygons through the current transform."""
        device = [geometry.apply_to_points(self._transform, p) for p in polygons]
        coverage = self._coverage(device, fill_rule)
        color_utils.composite_coverage(self.pixels, coverage, color_utils.parse_color(color))

    def fill_rect(self, x: float, y: float, w: float, h: float, color: Color = color_utils.BLACK) -> None:
        self.fill_polygons([geometry.rect_corners(x, y, w, h)], color)

    def fill_circle(self, cx: float, cy: float, radius: float, color: Color = color_utils.BLACK) -> None:
        if radius <= 0:
            return
        poly = geometry.circle_polyline(cx, cy, radius, max_err_px=self.curve_tolerance_px)
        self.fill_polygons([poly], color)

    def fill_path(self, path: Path2D, color: Color = color_utils.BLACK, fill_rule: str = 'nonzero') -> None:
        """Fill every subpath (open subpaths are implicitly closed)."""
        polygons = [pts for pts, _closed in path.subpaths(self.curve_tolerance_px)]
        if polygons:
            self.fill_polygons(polygons, color, fill_rule)

    # ------------------------------------------------------------------
    # Strokes
    # ------------------------------------------------------------------

    def stroke_path(
        self,
        path: Path2D,
        width: float,
        color: Color = color_utils.BLACK,
        miter_limit: float = 10.0
    ) -> None:
        """Stroke ``path`` with mitre joins and flat caps."""
        if width <= 0:
            return
        rings = stroke_outline(path.subpaths(self.curve_tolerance_px), width, miter_limit)
        if rings:
            self.fill_polygons(rings, color, fill_rule='evenodd')

    # ------------------------------------------------------------------
    # Images and layers
    # ------------------------------------------------------------------

    def draw_image(
        self,
        rgba: np.ndarray,
        dx: float,
        dy: float,
        dw: Optional[float] = None,
        dh: Optional[float] = None
    ) -> None:
        """Draw an RGBA image into the rect (dx, dy, dw, dh) in user space."""
        rgba = validators.validate_rgba(rgba, "Image")
        ih, iw = rgba.shape[:2]
        dw = float(iw if dw is None else dw)
        dh = float(ih if dh is None else dh)
        if dw == 0 or dh == 0:
            return

        src = _premultiply(rgba)
        sx, sy = dw / iw, dh / ih
        # Area pre-filter for strong minification; bilinear warp aliases below ~0.5×
        if min(abs(sx), abs(sy)) < 0.5:
            new_w = max(1, int(round(iw * min(abs(sx) * 2.0, 1.0))))
            new_h = max(1, int(round(ih * min(abs(sy) * 2.0, 1.0))))
            src = cv2.resize(src, (new_w, new_h), interpolation=cv2.INTER_AREA)
            iw, ih = new_w, new_h

        matrix = geometry.compose(
            self._transform,
            geometry.translation(dx, dy),
            geometry.scaling(dw / iw, dh / ih),
        )
        warped = cv2.warpAffine(
            src,
            geometry.pixel_warp_matrix(matrix),
            (self.width, self.height),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_REPLICATE,
        )
        quad = geometry.apply_to_points(self._transform, geometry.rect_corners(dx, dy, dw, dh))
        coverage = self._rasterize([quad]).astype(np.float32) / 255.0
        warped *= coverage[..., np.newaxis]
        _composite_premultiplied(self.pixels, warped)

    def draw_coverage(self, coverage: np.ndarray, color: Color = color_utils.BLACK) -> None:
        """Composite a canvas-sized coverage layer drawn in user space."""
        if coverage.shape != (self.height, self.width):
            raise ValueError(
                f"Coverage shape {coverage.shape} != surface ({self.height}, {self.width})"
            )
        if not self._is_identity():
            coverage = cv2.warpAffine(
                coverage,
                geometry.pixel_warp_matrix(self._transform),
                (self.width, self.height),
                flags=cv2.INTER_LINEAR,
                borderMode=cv2.BORDER_CONSTANT,
                borderValue=0,
            )
        color_utils.composite_coverage(self.pixels, coverage.astype(np.uint8), color_utils.parse_color(color))


def stroke_outline(
    subpaths: Sequence[Tuple[np.ndarray, bool]],
    width: float,
    miter_limit: float = 10.0
) -> List[np.ndarray]:
    """Outline of a stroke as rings (exteriors and holes) in user space.

    Parameters
    ----------
    subpaths : sequence of (points, closed)
        Flattened subpaths
    width : float
        Line width in px
    miter_limit : float
        Mitre joins longer than ``miter_limit × width / 2`` are bevelled

    Returns
    -------
    list of np.ndarray
        Rings suitable for an even-odd fill
    """
    half = 0.5 * width
    outlines = []
    for points, closed in subpaths:
        if len(points) < 2:
            continue
        if closed and len(points) >= 3:
            geom = LinearRing(points)
        else:
            geom = LineString(points)
        if geom.length == 0:
            continue
        outlines.append(geom.buffer(
            half,
            join_style='mitre',
            mitre_limit=miter_limit,
            cap_style='flat',
        ))

    if not outlines:
        return []

    merged = unary_union(outlines)
    polys = list(getattr(merged, 'geoms', [merged]))
    rings = []
    for poly in polys:
        if not isinstance(poly, Polygon) or poly.is_empty:
            continue
        rings.append(np.asarray(poly.exterior.coords, dtype=np.float64))
        for interior in poly.interiors:
            rings.append(np.asarray(interior.coords, dtype=np.float64))
    return rings


def _premultiply(rgba: np.ndarray) -> np.ndarray:
    """uint8 RGBA → float32 premultiplied RGBA in 0..255."""
    out = rgba.astype(np.float32)
    out[..., :3] *= out[..., 3:4] / 255.0
    return out


def _composite_premultiplied(pixels: np.ndarray, layer: np.ndarray) -> None:
    """Source-over a float32 premultiplied layer onto uint8 ``pixels`` in place."""
    src_a = np.clip(layer[..., 3:4], 0.0, 255.0) / 255.0
    if not np.any(src_a > 0):
        return
    dst = pixels.astype(np.float32)
    dst_a = dst[..., 3:4] / 255.0
    dst_rgb_p = dst[..., :3] * dst_a

    out_a = src_a + dst_a * (1.0 - src_a)
    out_rgb_p = layer[..., :3] + dst_rgb_p * (1.0 - src_a)
    out_rgb = np.where(out_a > 0, out_rgb_p / np.maximum(out_a, 1e-12), 0.0)

    pixels[..., :3] = np.clip(np.rint(out_rgb), 0, 255).astype(np.uint8)
    pixels[..., 3:4] = np.clip(np.rint(out_a * 255.0), 0, 255).astype(np.uint8)
