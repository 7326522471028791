"""Background image preparation: 5:2 center crop and Gaussian blur."""

from __future__ import annotations

from io import BytesIO
import logging

from PIL import Image, ImageFilter

from domain.cover import (
    IMAGE_PROCESSING_CODE,
    NOT_FOUND_CODE,
    CoverPipelineError,
    CoverValidationError,
    compute_crop_box_5x2,
)

LOGGER = logging.getLogger("svg_cover")
DEFAULT_IMAGE_FORMAT = "PNG"
FILTERABLE_MODES = ("L", "LA", "RGB", "RGBA", "RGBX", "CMYK")


def read_image_bytes(image_path: str) -> bytes:
    """Read an image file into memory."""
    try:
        with open(image_path, "rb") as file_handle:
            return file_handle.read()
    except (FileNotFoundError, IsADirectoryError) as exc:
        raise CoverValidationError(
            NOT_FOUND_CODE, f"image file not found: {image_path}"
        ) from exc


def open_image(image_bytes: bytes) -> Image.Image:
    image = Image.open(BytesIO(image_bytes))
    image.load()
    return image


def encode_image(image: Image.Image, image_format: str | None) -> bytes:
    """Encode an image back into its source format."""
    target_format = image_format or DEFAULT_IMAGE_FORMAT
    if target_format == "JPEG" and image.mode not in ("L", "RGB", "CMYK"):
        image = image.convert("RGB")
    buffer = BytesIO()
    image.save(buffer, format=target_format)
    return buffer.getvalue()


def crop_to_5x2(image_bytes: bytes) -> bytes:
    """Crop an image around its center to a 5:2 width:height ratio."""
    try:
        image = open_image(image_bytes)
        source_format = image.format
        width, height = image.size
        left, top, crop_width, crop_height = compute_crop_box_5x2(width, height)
        LOGGER.info(
            "Cropping image to 5:2: %dx%d (%.2f:1) -> %dx%d",
            width,
            height,
            width / height,
            crop_width,
            crop_height,
        )
        cropped = image.crop((left, top, left + crop_width, top + crop_height))
        return encode_image(cropped, source_format)
    except Exception as exc:
        raise CoverPipelineError(
            IMAGE_PROCESSING_CODE, f"image cropping failed: {exc}"
        ) from exc


def apply_gaussian_blur(image_bytes: bytes, sigma: float) -> bytes:
    """Blur an image with a Gaussian of the given standard deviation."""
    if sigma <= 0:
        return image_bytes
    try:
        LOGGER.info("Applying Gaussian blur with sigma %s", sigma)
        image = open_image(image_bytes)
        source_format = image.format
        if image.mode not in FILTERABLE_MODES:
            image = image.convert("RGBA")
        blurred = image.filter(ImageFilter.GaussianBlur(radius=sigma))
        return encode_image(blurred, source_format)
    except Exception as exc:
        raise CoverPipelineError(
            IMAGE_PROCESSING_CODE, f"Gaussian blur failed: {exc}"
        ) from exc


def process_background(
    image_path: str, crop: bool = False, blur_sigma: float | None = None
) -> bytes:
    """Load a background image and apply the requested crop, then blur."""
    image_bytes = read_image_bytes(image_path)
    if crop:
        image_bytes = crop_to_5x2(image_bytes)
    if blur_sigma is not None and blur_sigma > 0:
        image_bytes = apply_gaussian_blur(image_bytes, blur_sigma)
    return image_bytes
