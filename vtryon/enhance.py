"""Pixel-level enhancement filters.

Every filter takes an ``(height, width, 4)`` uint8 RGBA array and returns a new
array of the same shape. The alpha channel is copied through untouched.
"""

import numpy as np

LUMA_WEIGHTS = (0.299, 0.587, 0.114)
OUTLIER_FRACTION = 0.01


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def _check_rgba(pixels: np.ndarray) -> None:
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"expected an RGBA raster, got shape {pixels.shape}")


def auto_white_balance(pixels: np.ndarray) -> np.ndarray:
    """Gray-world white balance: scale each channel so the means meet."""
    _check_rgba(pixels)
    out = pixels.copy()
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        return out

    rgb = pixels[..., :3].astype(np.float64)
    means = rgb.reshape(-1, 3).mean(axis=0)
    gray = means.mean()
    # A channel with zero mean has nothing to scale.
    safe = np.where(means > 0, means, 1.0)
    factors = np.where(means > 0, gray / safe, 1.0)

    out[..., :3] = _to_uint8(rgb * factors)
    return out


def luminance_histogram(pixels: np.ndarray) -> np.ndarray:
    rgb = pixels[..., :3].astype(np.float64)
    lum = rgb @ np.array(LUMA_WEIGHTS)
    bins = np.clip(np.rint(lum), 0, 255).astype(np.int64)
    return np.bincount(bins.ravel(), minlength=256)


def luminance_bounds(histogram: np.ndarray):
    """Return (min_lum, max_lum) after dropping 1% of pixel mass at each end."""
    total = int(histogram.sum())
    cutoff = total * OUTLIER_FRACTION
    cumulative = np.cumsum(histogram)
    min_lum = int(np.argmax(cumulative > cutoff))
    max_lum = int(np.argmax(cumulative > total - cutoff))
    return min_lum, max_lum


def enhance_contrast(pixels: np.ndarray, factor: float = 1.1) -> np.ndarray:
    """Histogram stretch to [0, 255] followed by a contrast gain around 128.

    Flat images (``max_lum <= min_lum``) are returned unchanged.
    """
    _check_rgba(pixels)
    out = pixels.copy()
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        return out

    min_lum, max_lum = luminance_bounds(luminance_histogram(pixels))
    span = max_lum - min_lum
    if span <= 0:
        return out

    rgb = pixels[..., :3].astype(np.float64)
    stretched = (rgb - min_lum) / span * 255.0
    stretched = 128.0 + (stretched - 128.0) * factor
    out[..., :3] = _to_uint8(stretched)
    return out


def skin_tone_mask(rgb: np.ndarray) -> np.ndarray:
    """Boolean mask of pixels whose normalized RGB shares look like skin."""
    rgb = rgb.astype(np.float64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    total = r + g + b
    has_light = total > 0
    r_share = np.divide(r, total, out=np.zeros_like(r), where=has_light)
    g_share = np.divide(g, total, out=np.zeros_like(g), where=has_light)
    b_share = np.divide(b, total, out=np.zeros_like(b), where=has_light)
    return (
        has_light
        & (r_share > 0.35) & (r_share < 0.55)
        & (g_share > 0.25) & (g_share < 0.45)
        & (b_share > 0.15) & (b_share < 0.35)
        & (r > b) & (g > b)
    )


def is_skin_tone(r: int, g: int, b: int) -> bool:
    return bool(skin_tone_mask(np.array([r, g, b], dtype=np.float64)))


def smooth_skin(pixels: np.ndarray, strength: float = 0.3) -> np.ndarray:
    """Blend skin-coloured interior pixels toward their 3x3 neighbourhood mean.

    Neighbourhoods are sampled from the input, not from partially smoothed
    output. The one-pixel border is never touched.
    """
    _check_rgba(pixels)
    out = pixels.copy()
    height, width = pixels.shape[:2]
    if height < 3 or width < 3:
        return out

    rgb = pixels[..., :3].astype(np.float64)
    center = rgb[1:-1, 1:-1]
    window_sum = np.zeros_like(center)
    for dy in (0, 1, 2):
        for dx in (0, 1, 2):
            window_sum += rgb[dy:height - 2 + dy, dx:width - 2 + dx]
    neighbourhood_mean = window_sum / 9.0

    mask = skin_tone_mask(center)
    blended = center + (neighbourhood_mean - center) * strength

    interior = out[1:-1, 1:-1, :3]
    interior[mask] = _to_uint8(blended[mask])
    return out
