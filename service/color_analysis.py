"""Pick a readable caption color from a background image's luminance."""

from __future__ import annotations

from io import BytesIO
import logging
import os
from typing import Tuple

import numpy as np
from PIL import Image

from domain.cover import (
    COLOR_ANALYSIS_CODE,
    FALLBACK_TEXT_COLOR,
    NOT_FOUND_CODE,
    ColorDecision,
    ColorSource,
    CoverValidationError,
    classify_luminance,
    compute_luminance,
)

LOGGER = logging.getLogger("svg_cover")


def compute_channel_means(image: Image.Image) -> Tuple[float, ...]:
    """Return the mean intensity of each channel, alpha included."""
    if image.mode == "P":
        image = image.convert("RGBA")
    elif image.mode not in ("L", "LA", "RGB", "RGBA"):
        image = image.convert("RGB")
    pixels = np.asarray(image, dtype=np.float64)
    if pixels.size == 0:
        raise ValueError("image has no pixels")
    if pixels.ndim == 2:
        return (float(pixels.mean()),)
    return tuple(float(value) for value in pixels.reshape(-1, pixels.shape[2]).mean(axis=0))


def analyze_text_color(image_source: bytes | str) -> ColorDecision:
    """Choose light or dark text for a background.

    A path that does not exist is an input error; anything that goes wrong
    while decoding or measuring the image degrades to the fallback color.
    """
    if isinstance(image_source, str) and not os.path.isfile(image_source):
        raise CoverValidationError(
            NOT_FOUND_CODE, f"image file not found: {image_source}"
        )

    try:
        if isinstance(image_source, str):
            with Image.open(image_source) as image:
                channel_means = compute_channel_means(image)
        else:
            with Image.open(BytesIO(image_source)) as image:
                channel_means = compute_channel_means(image)
        luminance = min(max(compute_luminance(channel_means), 0.0), 1.0)
    except Exception as exc:
        LOGGER.warning(
            "%s: %s, using default color %s",
            COLOR_ANALYSIS_CODE,
            str(exc).strip(),
            FALLBACK_TEXT_COLOR,
        )
        return ColorDecision(
            color=FALLBACK_TEXT_COLOR,
            source=ColorSource.FALLBACK,
            reason=str(exc).strip() or exc.__class__.__name__,
        )

    color = classify_luminance(luminance)
    LOGGER.info("Image brightness: %.1f%%", luminance * 100)
    LOGGER.info(
        "Selected text color: %s (%s)",
        color,
        "light" if luminance < 0.5 else "dark",
    )
    return ColorDecision(color=color, source=ColorSource.ANALYZED, luminance=luminance)
