"""Cover generation pipeline over a single in-memory template."""

from __future__ import annotations

import logging
import os
from typing import List, Sequence

from domain.cover import (
    DEFAULT_COLOR_SENTINEL,
    RASTERIZATION_CODE,
    BatchItemResult,
    ColorDecision,
    CoverPipelineError,
    CoverValidationError,
    GenerationOptions,
    GenerationResult,
    format_bytes,
    guess_mime_type,
    resolve_output_paths,
)
from service.background import process_background
from service.color_analysis import analyze_text_color
from service.raster import convert_to_png
from service.template_document import (
    TemplateDocument,
    resolve_font_size,
    set_background_image,
    set_text,
)

LOGGER = logging.getLogger("svg_cover")
DEFAULT_BATCH_PREFIX = "header-"


def save_file(content: str | bytes, file_path: str) -> None:
    """Write text or bytes to file_path, creating parent directories."""
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if isinstance(content, bytes):
        with open(file_path, "wb") as file_handle:
            file_handle.write(content)
    else:
        with open(file_path, "w", encoding="utf-8") as file_handle:
            file_handle.write(content)


class CoverEditor:
    """Edits one template in memory; each call builds on the previous edits.

    Not safe for concurrent use: generations mutate the shared document.
    """

    def __init__(self, template_path: str) -> None:
        self.template_path = template_path
        self.document = TemplateDocument.load(template_path)

    @property
    def svg_content(self) -> str:
        return self.document.serialize()

    def save_file(self, content: str | bytes, file_path: str) -> None:
        save_file(content, file_path)

    def convert_to_png(
        self, svg_content: str, scale: float = 1.0, color_override: str | None = None
    ) -> bytes:
        return convert_to_png(svg_content, scale, color_override)

    def replace_background_image(
        self,
        image_path: str,
        crop_to_5x2: bool = False,
        gaussian_blur: float | None = None,
    ) -> str:
        """Embed a processed background image and return the updated SVG."""
        self._apply_background(image_path, crop_to_5x2, gaussian_blur)
        return self.svg_content

    def _apply_background(
        self, image_path: str, crop_to_5x2: bool, gaussian_blur: float | None
    ) -> bytes:
        image_bytes = process_background(image_path, crop_to_5x2, gaussian_blur)
        set_background_image(self.document, image_bytes, guess_mime_type(image_path))
        LOGGER.info("Background image replaced: %s", os.path.basename(image_path))
        return image_bytes

    def generate(
        self,
        text: str,
        output_path: str,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """Write <output>.svg and, when requested, <output>.png for text."""
        options = options or GenerationOptions()
        font_size = resolve_font_size(text, options.font_size)

        color_decision: ColorDecision | None = None
        if options.background_image:
            processed = self._apply_background(
                options.background_image, options.crop_to_5x2, options.blur_sigma
            )
            if options.auto_color:
                color_decision = analyze_text_color(processed)
        text_color = color_decision.color if color_decision else None

        set_text(self.document, text, font_size, text_color)
        svg_content = self.svg_content

        svg_path, png_path = resolve_output_paths(output_path)
        save_file(svg_content, svg_path)
        LOGGER.info("SVG saved to: %s", svg_path)

        result_png_path: str | None = None
        result_png_size: int | None = None
        raster_error: str | None = None
        if options.generate_png:
            try:
                png_bytes = convert_to_png(svg_content, options.png_scale, text_color)
                save_file(png_bytes, png_path)
            except CoverPipelineError as exc:
                LOGGER.error("%s: %s", exc.code, str(exc).strip())
                raster_error = str(exc).strip()
            except OSError as exc:
                raster_error = f"PNG save failed: {exc}"
                LOGGER.error("%s: %s", RASTERIZATION_CODE, raster_error)
            else:
                LOGGER.info("PNG saved to: %s", png_path)
                result_png_path = png_path
                result_png_size = os.path.getsize(png_path)

        result = GenerationResult(
            text=text,
            font_size=font_size,
            text_color=text_color or DEFAULT_COLOR_SENTINEL,
            text_length=len(text),
            svg_path=svg_path,
            svg_size=os.path.getsize(svg_path),
            png_path=result_png_path,
            png_size=result_png_size,
            color_decision=color_decision,
            raster_error=raster_error,
        )
        log_summary(result)
        return result


def log_summary(result: GenerationResult) -> None:
    LOGGER.info("Summary:")
    LOGGER.info('  Text: "%s"', result.text)
    LOGGER.info("  Font size: %dpx", result.font_size)
    if result.text_color != DEFAULT_COLOR_SENTINEL:
        LOGGER.info("  Text color: %s", result.text_color)
    LOGGER.info("  Text length: %d characters", result.text_length)
    LOGGER.info("  SVG size: %s", format_bytes(result.svg_size))
    if result.png_size is not None:
        LOGGER.info("  PNG size: %s", format_bytes(result.png_size))


def run_batch(
    editor: CoverEditor,
    texts: Sequence[str],
    output_dir: str,
    prefix: str = DEFAULT_BATCH_PREFIX,
    options: GenerationOptions | None = None,
    continue_on_fail: bool = False,
) -> List[BatchItemResult]:
    """Generate one cover per text into <output_dir>/<prefix><n>, in order.

    Auto-color is forced off since batch runs never change the background.
    """
    base_options = options or GenerationOptions()
    batch_options = GenerationOptions(
        font_size=base_options.font_size,
        generate_png=base_options.generate_png,
        png_scale=base_options.png_scale,
        auto_color=False,
    )
    LOGGER.info("Processing %d items", len(texts))

    results: List[BatchItemResult] = []
    for index, text in enumerate(texts, start=1):
        output_path = os.path.join(output_dir, f"{prefix}{index}")
        LOGGER.info('[%d/%d] Generating: "%s"', index, len(texts), text)
        try:
            result = editor.generate(text, output_path, batch_options)
        except (CoverValidationError, CoverPipelineError, OSError) as exc:
            if not continue_on_fail:
                raise
            LOGGER.error("svg_cover.batch.item_failed: [%d] %s", index, str(exc).strip())
            results.append(BatchItemResult(index=index, text=text, error=str(exc).strip()))
            continue
        results.append(BatchItemResult(index=index, text=text, result=result))

    succeeded = [item.result for item in results if item.result is not None]
    total_svg_size = sum(result.svg_size for result in succeeded)
    total_png_size = sum(result.png_size or 0 for result in succeeded)
    LOGGER.info("Generated %d of %d covers in %s", len(succeeded), len(texts), output_dir)
    LOGGER.info("Total SVG size: %s", format_bytes(total_svg_size))
    if batch_options.generate_png:
        LOGGER.info("Total PNG size: %s", format_bytes(total_png_size))
    return results
