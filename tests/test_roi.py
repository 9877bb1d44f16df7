from __future__ import annotations

import numpy as np

from vitaltriage.roi import ROI, detect_roi, mean_rgb


def _skin_frame(h: int = 120, w: int = 160) -> np.ndarray:
    frame = np.zeros((h, w, 3), dtype=np.uint8)
    frame[...] = (200, 140, 120)
    return frame


def test_detect_roi_on_skin_frame() -> None:
    frame = _skin_frame()
    roi = detect_roi(frame)
    assert roi is not None
    assert 0 <= roi.x and roi.x + roi.width <= frame.shape[1]
    assert 0 <= roi.y and roi.y + roi.height <= frame.shape[0]


def test_detect_roi_none_without_skin() -> None:
    assert detect_roi(np.zeros((120, 160, 3), dtype=np.uint8)) is None
    assert detect_roi(np.full((120, 160, 3), 255, dtype=np.uint8)) is None


def test_detect_roi_rejects_malformed_frames() -> None:
    assert detect_roi(np.zeros((120, 160), dtype=np.uint8)) is None
    assert detect_roi("not a frame") is None


def test_mean_rgb_inside_roi() -> None:
    rgb = np.array(
        [
            [[255, 0, 0], [0, 255, 0]],
            [[0, 0, 255], [255, 255, 255]],
        ],
        dtype=np.uint8,
    )
    big = np.zeros((8, 8, 3), dtype=np.uint8)
    big[:2, :2] = rgb
    r, g, b = mean_rgb(big, ROI(0, 0, 2, 2))
    assert np.isclose(r, (255 + 0 + 0 + 255) / 4.0)
    assert np.isclose(g, (0 + 255 + 0 + 255) / 4.0)
    assert np.isclose(b, (0 + 0 + 255 + 255) / 4.0)


def test_mean_rgb_skips_transparent_pixels() -> None:
    frame = np.zeros((8, 8, 4), dtype=np.uint8)
    frame[..., :3] = (100, 50, 25)
    assert mean_rgb(frame, ROI(0, 0, 8, 8)) is None
    frame[:4, :, 3] = 255
    assert mean_rgb(frame, ROI(0, 0, 8, 8)) == (100.0, 50.0, 25.0)


def test_mean_rgb_missing_or_outside_roi() -> None:
    frame = _skin_frame()
    assert mean_rgb(frame, None) is None
    assert mean_rgb(frame, ROI(500, 500, 10, 10)) is None
