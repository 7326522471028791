#!/usr/bin/env -S uv run
# /// script
# requires-python = ">=3.11"
# dependencies = [
#   "pillow>=10",
#   "numpy>=1.26",
#   "cairosvg>=2.7"
# ]
# ///
"""Generate blog cover SVG/PNG files from a template with a custom caption."""

from __future__ import annotations

import argparse
import json
import logging
import os
import re
import sys
from typing import Any, Sequence

from domain.cover import (
    INVALID_CONFIG_CODE,
    NOT_FOUND_CODE,
    CoverPipelineError,
    CoverValidationError,
    GenerationOptions,
    format_bytes,
)
from service.cover_editor import DEFAULT_BATCH_PREFIX, CoverEditor, run_batch

LOGGER = logging.getLogger("svg_cover")
DEFAULT_TEMPLATE = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "templates", "cover.svg"
)


def configure_logging() -> None:
    """Configure logging for CLI output."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")


def positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="svg_cover.py",
        description="Edit SVG cover text and convert it to PNG.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", help="Generate SVG and PNG with custom text"
    )
    generate_parser.add_argument("text")
    generate_parser.add_argument(
        "-o", "--output", default="output", help="Output path without extension"
    )
    generate_parser.add_argument("-t", "--template", default=DEFAULT_TEMPLATE)
    generate_parser.add_argument(
        "-s", "--size", type=int, default=None, help="Fixed font size"
    )
    generate_parser.add_argument(
        "-b", "--background", default=None, help="Background image to embed"
    )
    generate_parser.add_argument("--no-png", action="store_true")
    generate_parser.add_argument("--png-scale", type=positive_float, default=1.0)
    generate_parser.add_argument("--no-auto-color", action="store_true")
    generate_parser.add_argument(
        "--crop-5x2", action="store_true", help="Crop the background to 5:2"
    )
    generate_parser.add_argument(
        "--blur", type=float, default=None, help="Gaussian blur sigma for the background"
    )
    generate_parser.add_argument("--json", action="store_true")

    batch_parser = subparsers.add_parser(
        "batch", help="Generate multiple SVG/PNG files from a list"
    )
    batch_parser.add_argument("texts", nargs="+")
    batch_parser.add_argument("-t", "--template", default=DEFAULT_TEMPLATE)
    batch_parser.add_argument("-p", "--prefix", default=DEFAULT_BATCH_PREFIX)
    batch_parser.add_argument("-d", "--output-dir", default=".")
    batch_parser.add_argument("--no-png", action="store_true")
    batch_parser.add_argument("--png-scale", type=positive_float, default=1.0)
    batch_parser.add_argument("--continue-on-fail", action="store_true")
    batch_parser.add_argument("--json", action="store_true")

    convert_parser = subparsers.add_parser("convert", help="Convert existing SVG to PNG")
    convert_parser.add_argument("input")
    convert_parser.add_argument(
        "-o", "--output", default=None, help="Output PNG (default: input with .png)"
    )
    convert_parser.add_argument("-s", "--scale", type=positive_float, default=1.0)

    replace_parser = subparsers.add_parser(
        "replace-background", help="Replace the background image of an SVG template"
    )
    replace_parser.add_argument("template")
    replace_parser.add_argument("image")
    replace_parser.add_argument(
        "-o", "--output", default=None, help="Output SVG (default: overwrite template)"
    )
    replace_parser.add_argument("--crop-5x2", action="store_true")
    replace_parser.add_argument("--blur", type=float, default=None)
    return parser


def emit_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2))
    sys.stdout.write("\n")


def run_generate(parsed: argparse.Namespace) -> int:
    options = GenerationOptions(
        font_size=parsed.size,
        background_image=os.path.abspath(parsed.background) if parsed.background else None,
        generate_png=not parsed.no_png,
        png_scale=parsed.png_scale,
        auto_color=not parsed.no_auto_color,
        crop_to_5x2=parsed.crop_5x2,
        gaussian_blur=parsed.blur,
    )
    editor = CoverEditor(os.path.abspath(parsed.template))
    result = editor.generate(parsed.text, os.path.abspath(parsed.output), options)
    if parsed.json:
        emit_json(result.to_dict())
    LOGGER.info("Generation complete")
    return 0


def run_batch_command(parsed: argparse.Namespace) -> int:
    options = GenerationOptions(
        generate_png=not parsed.no_png, png_scale=parsed.png_scale, auto_color=False
    )
    editor = CoverEditor(os.path.abspath(parsed.template))
    results = run_batch(
        editor,
        parsed.texts,
        os.path.abspath(parsed.output_dir),
        prefix=parsed.prefix,
        options=options,
        continue_on_fail=parsed.continue_on_fail,
    )
    if parsed.json:
        emit_json([item.to_dict() for item in results])
    if any(not item.success for item in results):
        return 1
    LOGGER.info("Batch generation complete")
    return 0


def run_convert(parsed: argparse.Namespace) -> int:
    input_path = os.path.abspath(parsed.input)
    if parsed.output:
        output_path = os.path.abspath(parsed.output)
    else:
        output_path = re.sub(r"\.svg$", ".png", input_path)
    if output_path == input_path:
        raise CoverValidationError(
            INVALID_CONFIG_CODE, "output path would overwrite the input SVG"
        )
    LOGGER.info("Input: %s", input_path)
    LOGGER.info("Output: %s", output_path)
    LOGGER.info("Scale: %sx", parsed.scale)

    editor = CoverEditor(input_path)
    png_bytes = editor.convert_to_png(editor.svg_content, parsed.scale)
    editor.save_file(png_bytes, output_path)
    LOGGER.info("PNG saved: %s", output_path)
    LOGGER.info("Size: %s", format_bytes(os.path.getsize(output_path)))
    return 0


def run_replace_background(parsed: argparse.Namespace) -> int:
    template_path = os.path.abspath(parsed.template)
    image_path = os.path.abspath(parsed.image)
    output_path = os.path.abspath(parsed.output) if parsed.output else template_path
    if not os.path.isfile(image_path):
        raise CoverValidationError(NOT_FOUND_CODE, f"image file not found: {image_path}")
    LOGGER.info("Template: %s", template_path)
    LOGGER.info("Image: %s", image_path)
    LOGGER.info("Output: %s", output_path)

    editor = CoverEditor(template_path)
    updated_svg = editor.replace_background_image(image_path, parsed.crop_5x2, parsed.blur)
    editor.save_file(updated_svg, output_path)
    LOGGER.info("Image size: %s", format_bytes(os.path.getsize(image_path)))
    LOGGER.info("SVG size: %s", format_bytes(os.path.getsize(output_path)))
    return 0


COMMANDS = {
    "generate": run_generate,
    "batch": run_batch_command,
    "convert": run_convert,
    "replace-background": run_replace_background,
}


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    configure_logging()
    parsed = build_parser().parse_args(sys.argv[1:] if argv is None else argv)

    try:
        return COMMANDS[parsed.command](parsed)
    except CoverValidationError as exc:
        LOGGER.error("%s: %s", exc.code, str(exc).strip())
        return 1
    except CoverPipelineError as exc:
        LOGGER.error("%s: %s", exc.code, str(exc).strip())
        return 1
    except Exception as exc:
        LOGGER.error("svg_cover.unhandled_error: %s", str(exc).strip())
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
