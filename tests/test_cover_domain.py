"""Unit tests for svg_cover domain helpers."""

from __future__ import annotations

import pytest

from domain.cover import (
    DARK_TEXT_COLOR,
    EMPTY_TEXT_CODE,
    INVALID_CONFIG_CODE,
    LIGHT_TEXT_COLOR,
    BatchItemResult,
    ColorDecision,
    ColorSource,
    CoverValidationError,
    GenerationOptions,
    GenerationResult,
    classify_luminance,
    compute_crop_box_5x2,
    compute_luminance,
    fit_font_size,
    format_bytes,
    guess_mime_type,
    resolve_output_paths,
)


def test_fit_font_size_stays_in_range_and_never_grows() -> None:
    """Longer captions never get a larger font and stay within bounds."""
    previous_size = None
    for length in range(1, 120):
        size = fit_font_size("x" * length)
        assert 40 <= size <= 250
        if previous_size is not None:
            assert size <= previous_size
        previous_size = size


def test_fit_font_size_known_values() -> None:
    """Check the width heuristic at and between the clamps."""
    assert fit_font_size("Hello World") == 212
    assert fit_font_size("a") == 250
    assert fit_font_size("x" * 100) == 40
    assert fit_font_size("abc", max_width=300, min_size=10, max_size=500) == 166


def test_fit_font_size_rejects_empty_text() -> None:
    """Empty captions are an input error."""
    with pytest.raises(CoverValidationError) as error:
        fit_font_size("")
    assert error.value.code == EMPTY_TEXT_CODE


def test_classify_luminance_boundary_is_exclusive() -> None:
    """Exactly half brightness picks dark text."""
    assert classify_luminance(0.0) == LIGHT_TEXT_COLOR
    assert classify_luminance(0.4999) == LIGHT_TEXT_COLOR
    assert classify_luminance(0.5) == DARK_TEXT_COLOR
    assert classify_luminance(1.0) == DARK_TEXT_COLOR


def test_compute_luminance_weights_rgb_and_uses_first_gray_channel() -> None:
    """RGB uses the weighted sum, grayscale its single channel."""
    assert compute_luminance((255.0, 0.0, 0.0)) == pytest.approx(0.299)
    assert compute_luminance((0.0, 255.0, 0.0, 10.0)) == pytest.approx(0.587)
    assert compute_luminance((51.0,)) == pytest.approx(0.2)
    assert compute_luminance((102.0, 255.0)) == pytest.approx(0.4)
    with pytest.raises(ValueError) as error:
        compute_luminance(())
    assert not isinstance(error.value, CoverValidationError)


@pytest.mark.parametrize(
    ("width", "height", "expected"),
    [
        (2000, 2000, (0, 600, 2000, 800)),
        (1000, 2000, (0, 800, 1000, 400)),
        (3000, 1000, (250, 0, 2500, 1000)),
        (2500, 1000, (0, 0, 2500, 1000)),
        (1001, 300, (126, 0, 750, 300)),
    ],
)
def test_compute_crop_box_5x2(
    width: int, height: int, expected: tuple[int, int, int, int]
) -> None:
    """Crop boxes are centered with a 5:2 ratio."""
    left, top, crop_width, crop_height = compute_crop_box_5x2(width, height)
    assert (left, top, crop_width, crop_height) == expected
    assert abs(crop_width - crop_height * 2.5) <= 1.5


def test_guess_mime_type_defaults_to_png() -> None:
    """Known extensions map to their MIME type, others to PNG."""
    assert guess_mime_type("photo.JPG") == "image/jpeg"
    assert guess_mime_type("photo.jpeg") == "image/jpeg"
    assert guess_mime_type("anim.gif") == "image/gif"
    assert guess_mime_type("logo.svg") == "image/svg+xml"
    assert guess_mime_type("pic.webp") == "image/webp"
    assert guess_mime_type("scan.tiff") == "image/png"
    assert guess_mime_type("noext") == "image/png"


def test_resolve_output_paths() -> None:
    """The .svg suffix is added once and swapped for .png."""
    assert resolve_output_paths("out/cover") == ("out/cover.svg", "out/cover.png")
    assert resolve_output_paths("out/cover.svg") == ("out/cover.svg", "out/cover.png")


def test_format_bytes() -> None:
    """Byte counts are rendered with binary units."""
    assert format_bytes(0) == "0 Bytes"
    assert format_bytes(512) == "512 Bytes"
    assert format_bytes(1024) == "1 KB"
    assert format_bytes(1536) == "1.5 KB"
    assert format_bytes(5 * 1024 * 1024) == "5 MB"
    assert format_bytes(3 * 1024**4) == "3072 GB"
    assert format_bytes(1152) == "1.13 KB"
    assert format_bytes(1130) == "1.1 KB"


def test_generation_options_validation() -> None:
    """Invalid option values are rejected on construction."""
    with pytest.raises(CoverValidationError) as error:
        GenerationOptions(font_size=0)
    assert error.value.code == INVALID_CONFIG_CODE
    with pytest.raises(CoverValidationError):
        GenerationOptions(png_scale=0)
    with pytest.raises(CoverValidationError):
        GenerationOptions(background_image="  ")


def test_generation_options_blur_sigma_only_when_positive() -> None:
    """Non-positive blur values mean no blur."""
    assert GenerationOptions().blur_sigma is None
    assert GenerationOptions(gaussian_blur=0).blur_sigma is None
    assert GenerationOptions(gaussian_blur=-3).blur_sigma is None
    assert GenerationOptions(gaussian_blur=4.5).blur_sigma == 4.5


def test_color_decision_variants() -> None:
    """Analyzed decisions carry luminance, fallbacks carry a reason."""
    analyzed = ColorDecision("#ffffff", ColorSource.ANALYZED, luminance=0.1)
    assert not analyzed.is_fallback
    fallback = ColorDecision("#b5eea5", ColorSource.FALLBACK, reason="broken")
    assert fallback.is_fallback
    with pytest.raises(CoverValidationError):
        ColorDecision("#ffffff", ColorSource.ANALYZED)
    with pytest.raises(CoverValidationError):
        ColorDecision("#b5eea5", ColorSource.FALLBACK)


def test_result_to_dict_is_json_ready() -> None:
    """Result records flatten enums to plain values."""
    result = GenerationResult(
        text="Hi",
        font_size=250,
        text_color="#ffffff",
        text_length=2,
        svg_path="a.svg",
        svg_size=10,
        color_decision=ColorDecision("#ffffff", ColorSource.ANALYZED, luminance=0.2),
    )
    payload = BatchItemResult(index=1, text="Hi", result=result).to_dict()
    assert payload["success"] is True
    assert payload["font_size"] == 250
    assert payload["color_decision"]["source"] == "analyzed"
    assert payload["png_path"] is None

    failed = BatchItemResult(index=2, text="", error="text cannot be empty").to_dict()
    assert failed == {
        "index": 2,
        "text": "",
        "success": False,
        "error": "text cannot be empty",
    }
