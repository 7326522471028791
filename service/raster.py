"""Rasterize cover templates to PNG with cairosvg."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from domain.cover import (
    FALLBACK_TEXT_COLOR,
    RASTERIZATION_CODE,
    CoverPipelineError,
)
from service.template_document import TemplateDocument

LOGGER = logging.getLogger("svg_cover")

CAPTION_ANCHOR_X = "750"
CAPTION_ANCHOR_Y = "330"
CAPTION_FONT_FAMILY = "Ubuntu"
DEFAULT_CAPTION_FONT_SIZE = 170


def build_caption_text_element(
    document: TemplateDocument, text: str, font_size: int, color: str
) -> ET.Element:
    element = ET.Element(
        document.qualify("text"),
        {
            "x": CAPTION_ANCHOR_X,
            "y": CAPTION_ANCHOR_Y,
            "font-family": CAPTION_FONT_FAMILY,
            "font-size": str(font_size),
            "font-weight": "bold",
            "fill": color,
            "text-anchor": "middle",
            "dominant-baseline": "middle",
        },
    )
    element.text = text
    return element


def normalize_for_raster(svg_content: str, color_override: str | None = None) -> str:
    """Replace the HTML caption block with an equivalent native <text>.

    cairosvg does not render foreignObject HTML, so the caption text, font
    size and color are lifted out of it into a centered bold text element
    that takes the place of the first <switch> block. Documents without a
    caption container are returned unchanged.
    """
    document = TemplateDocument(svg_content)
    caption = document.caption_text
    if caption is None:
        return svg_content

    font_size = document.font_size or DEFAULT_CAPTION_FONT_SIZE
    color = color_override or document.text_color or FALLBACK_TEXT_COLOR
    text_element = build_caption_text_element(document, caption, font_size, color)
    if not document.replace_first("switch", text_element):
        return svg_content
    return document.serialize()


def convert_to_png(
    svg_content: str, scale: float = 1.0, color_override: str | None = None
) -> bytes:
    """Render SVG markup to PNG bytes, scaling both axes by scale."""
    try:
        import cairosvg

        LOGGER.info("Rendering PNG at %sx scale", scale)
        normalized = normalize_for_raster(svg_content, color_override)
        return cairosvg.svg2png(bytestring=normalized.encode("utf-8"), scale=scale)
    except Exception as exc:
        raise CoverPipelineError(
            RASTERIZATION_CODE, f"PNG conversion failed: {exc}"
        ) from exc
