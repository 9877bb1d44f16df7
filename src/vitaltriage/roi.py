"""ROI localization and mean color extraction.

The detector is a fixed-geometry heuristic: it assumes a roughly centered
face, takes the forehead band inside that box and accepts it only when
enough of its pixels pass a simple RGB skin rule. Frames are HxWx3 (RGB)
or HxWx4 (RGBA) arrays.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class ROI:
    x: int
    y: int
    width: int
    height: int

    def slices(self) -> Tuple[slice, slice]:
        return slice(self.y, self.y + self.height), slice(self.x, self.x + self.width)


def _as_frame(frame: object) -> Optional[np.ndarray]:
    if not isinstance(frame, np.ndarray):
        return None
    if frame.ndim != 3 or frame.shape[2] not in (3, 4):
        return None
    if frame.shape[0] < 4 or frame.shape[1] < 4:
        return None
    return frame


def skin_mask(rgb: np.ndarray) -> np.ndarray:
    """Boolean mask of skin-like pixels (uniform daylight RGB rule)."""
    px = rgb[..., :3].astype(np.int32)
    r, g, b = px[..., 0], px[..., 1], px[..., 2]
    spread = px.max(axis=-1) - px.min(axis=-1)
    return (
        (r > 95) & (g > 40) & (b > 20)
        & (spread > 15) & (np.abs(r - g) > 15) & (r > g) & (r > b)
    )


def forehead_roi(width: int, height: int) -> ROI:
    """Forehead band of a centered face box (30% x 40% of the frame)."""
    face_w = width * 0.3
    face_h = height * 0.4
    face_x = (width - face_w) / 2.0
    face_y = height * 0.2
    roi_w = face_w * 0.8
    roi_h = face_h * 0.3
    return ROI(
        x=int(round(face_x + (face_w - roi_w) / 2.0)),
        y=int(round(face_y + face_h * 0.1)),
        width=max(1, int(round(roi_w))),
        height=max(1, int(round(roi_h))),
    )


def detect_roi(frame: object, min_skin_fraction: float = 0.3) -> Optional[ROI]:
    """Return the forehead ROI if it looks like skin, else None."""
    arr = _as_frame(frame)
    if arr is None:
        return None
    h, w = arr.shape[:2]
    roi = forehead_roi(w, h)
    patch = arr[roi.slices()]
    if patch.size == 0:
        return None
    if float(skin_mask(patch).mean()) < min_skin_fraction:
        return None
    return roi


def mean_rgb(frame: object, roi: Optional[ROI]) -> Optional[Tuple[float, float, float]]:
    """Mean (R, G, B) inside ``roi``.

    RGBA pixels with alpha <= 128 are skipped. Returns None for a missing
    ROI, an unreadable frame, an ROI outside the frame, or no opaque pixels.
    """
    if roi is None:
        return None
    arr = _as_frame(frame)
    if arr is None:
        return None
    h, w = arr.shape[:2]
    x0, y0 = max(0, roi.x), max(0, roi.y)
    x1, y1 = min(w, roi.x + roi.width), min(h, roi.y + roi.height)
    if x1 <= x0 or y1 <= y0:
        return None
    patch = arr[y0:y1, x0:x1].astype(np.float64)
    px = patch.reshape(-1, patch.shape[-1])
    if px.shape[1] == 4:
        px = px[px[:, 3] > 128]
    if px.shape[0] == 0:
        return None
    r_mean, g_mean, b_mean = px[:, :3].mean(axis=0)
    return float(r_mean), float(g_mean), float(b_mean)
