"""Domain types and pure helpers for svg_cover."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
import math
import os
from typing import Any, Dict, Tuple

NOT_FOUND_CODE = "svg_cover.input.not_found"
EMPTY_TEXT_CODE = "svg_cover.input.empty_text"
INVALID_CONFIG_CODE = "svg_cover.input.invalid_config"
IMAGE_PROCESSING_CODE = "svg_cover.image.processing_failed"
RASTERIZATION_CODE = "svg_cover.raster.conversion_failed"
INVALID_TEMPLATE_CODE = "svg_cover.template.invalid"
COLOR_ANALYSIS_CODE = "svg_cover.color.analysis_failed"

CHAR_WIDTH_RATIO = 0.6
DEFAULT_MAX_WIDTH = 1400
DEFAULT_MIN_FONT_SIZE = 40
DEFAULT_MAX_FONT_SIZE = 250

LIGHT_TEXT_COLOR = "#ffffff"
DARK_TEXT_COLOR = "#1a1a1a"
FALLBACK_TEXT_COLOR = "#b5eea5"
LUMINANCE_THRESHOLD = 0.5
DEFAULT_COLOR_SENTINEL = "default"

DEFAULT_MIME_TYPE = "image/png"
MIME_TYPES_BY_EXTENSION = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
}
BYTE_UNITS = ("Bytes", "KB", "MB", "GB")


class CoverValidationError(ValueError):
    """Validation error with a stable error code."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class CoverPipelineError(RuntimeError):
    """Runtime error with a stable error code."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class ColorSource(str, Enum):
    """Origin of a text color decision."""

    ANALYZED = "analyzed"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ColorDecision:
    """Text color chosen for a background, analyzed or degraded to fallback."""

    color: str
    source: ColorSource
    luminance: float | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.source == ColorSource.ANALYZED:
            if self.luminance is None or not 0.0 <= self.luminance <= 1.0:
                raise CoverValidationError(
                    INVALID_CONFIG_CODE, "analyzed luminance must be within [0, 1]"
                )
        elif not self.reason:
            raise CoverValidationError(
                INVALID_CONFIG_CODE, "fallback color decision requires a reason"
            )

    @property
    def is_fallback(self) -> bool:
        return self.source == ColorSource.FALLBACK


@dataclass(frozen=True)
class GenerationOptions:
    """Validated options for a single cover generation call."""

    font_size: int | None = None
    background_image: str | None = None
    generate_png: bool = True
    png_scale: float = 1.0
    auto_color: bool = True
    crop_to_5x2: bool = False
    gaussian_blur: float | None = None

    def __post_init__(self) -> None:
        if self.font_size is not None and self.font_size <= 0:
            raise CoverValidationError(
                INVALID_CONFIG_CODE, "font_size must be positive"
            )
        if self.background_image is not None and not self.background_image.strip():
            raise CoverValidationError(
                INVALID_CONFIG_CODE, "background_image must be non-empty"
            )
        if not math.isfinite(self.png_scale) or self.png_scale <= 0:
            raise CoverValidationError(
                INVALID_CONFIG_CODE, "png_scale must be a positive number"
            )
        if self.gaussian_blur is not None and not math.isfinite(self.gaussian_blur):
            raise CoverValidationError(
                INVALID_CONFIG_CODE, "gaussian_blur must be finite"
            )

    @property
    def blur_sigma(self) -> float | None:
        """Return the blur sigma when blurring applies, otherwise None."""
        if self.gaussian_blur is None or self.gaussian_blur <= 0:
            return None
        return self.gaussian_blur


@dataclass(frozen=True)
class GenerationResult:
    """Summary of the artifacts produced by one generation call."""

    text: str
    font_size: int
    text_color: str
    text_length: int
    svg_path: str
    svg_size: int
    png_path: str | None = None
    png_size: int | None = None
    color_decision: ColorDecision | None = None
    raster_error: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        if self.color_decision is not None:
            payload["color_decision"]["source"] = self.color_decision.source.value
        return payload


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome of one batch entry: a result, or the error that stopped it."""

    index: int
    text: str
    result: GenerationResult | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.result is not None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "index": self.index,
            "text": self.text,
            "success": self.success,
        }
        if self.result is not None:
            payload.update(self.result.to_dict())
        if self.error is not None:
            payload["error"] = self.error
        return payload


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


def fit_font_size(
    text: str,
    max_width: int = DEFAULT_MAX_WIDTH,
    min_size: int = DEFAULT_MIN_FONT_SIZE,
    max_size: int = DEFAULT_MAX_FONT_SIZE,
) -> int:
    """Estimate the font size that fits text into max_width.

    Uses a fixed character width ratio for a bold face instead of glyph
    metrics, so the result depends on the text length only.
    """
    if not text:
        raise CoverValidationError(EMPTY_TEXT_CODE, "text cannot be empty")
    optimal_size = math.floor(max_width / (len(text) * CHAR_WIDTH_RATIO))
    return max(min_size, min(optimal_size, max_size))


def classify_luminance(luminance: float) -> str:
    """Map a normalized luminance to a contrasting text color."""
    if luminance < LUMINANCE_THRESHOLD:
        return LIGHT_TEXT_COLOR
    return DARK_TEXT_COLOR


def compute_luminance(channel_means: Tuple[float, ...]) -> float:
    """Compute normalized luminance from per-channel mean intensities."""
    if not channel_means:
        raise ValueError("no channel statistics")
    if len(channel_means) >= 3:
        red_mean, green_mean, blue_mean = channel_means[:3]
        brightness = 0.299 * red_mean + 0.587 * green_mean + 0.114 * blue_mean
    else:
        brightness = channel_means[0]
    return brightness / 255.0


def compute_crop_box_5x2(width: int, height: int) -> Tuple[int, int, int, int]:
    """Return a centered (left, top, width, height) box with a 5:2 ratio."""
    if width <= 0 or height <= 0:
        raise CoverValidationError(
            INVALID_CONFIG_CODE, f"invalid image dimensions: {width}x{height}"
        )
    target_ratio = 5 / 2
    if width / height > target_ratio:
        crop_width = round_half_up(height * target_ratio)
        left = round_half_up((width - crop_width) / 2)
        return left, 0, crop_width, height
    crop_height = round_half_up(width / target_ratio)
    top = round_half_up((height - crop_height) / 2)
    return 0, top, width, crop_height


def guess_mime_type(image_path: str) -> str:
    """Return the image MIME type for a path based on its extension."""
    extension = os.path.splitext(image_path)[1].lower()
    return MIME_TYPES_BY_EXTENSION.get(extension, DEFAULT_MIME_TYPE)


def resolve_output_paths(output_path: str) -> Tuple[str, str]:
    """Return the SVG and PNG paths for an output path with or without .svg."""
    svg_path = output_path if output_path.endswith(".svg") else f"{output_path}.svg"
    png_path = svg_path[: -len(".svg")] + ".png"
    return svg_path, png_path


def format_bytes(byte_count: int) -> str:
    """Format a byte count for humans, e.g. 1536 -> '1.5 KB'."""
    if byte_count == 0:
        return "0 Bytes"
    unit_index = 0
    while unit_index < len(BYTE_UNITS) - 1 and byte_count >= 1024 ** (unit_index + 1):
        unit_index += 1
    value = round_half_up(byte_count / (1024**unit_index) * 100) / 100
    if value == int(value):
        value_text = str(int(value))
    else:
        value_text = f"{value:g}"
    return f"{value_text} {BYTE_UNITS[unit_index]}"
