"""In-memory SVG cover template and the node-level edits applied to it."""

from __future__ import annotations

import base64
import re
from typing import Dict, Iterator, Tuple
import xml.etree.ElementTree as ET

from domain.cover import (
    EMPTY_TEXT_CODE,
    INVALID_TEMPLATE_CODE,
    NOT_FOUND_CODE,
    CoverPipelineError,
    CoverValidationError,
    fit_font_size,
)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"
XHTML_NAMESPACE = "http://www.w3.org/1999/xhtml"
XLINK_HREF = f"{{{XLINK_NAMESPACE}}}href"

ROOT_START_PATTERN = re.compile(r"<svg[\s>/]")
CAPTION_STYLE_PATTERN = re.compile(r"^\s*display:\s*inline-block")
FONT_SIZE_PATTERN = re.compile(r"font-size:\s*(\d+)px")
LIGHT_DARK_COLOR_PATTERN = re.compile(
    r"(?<![\w-])color:\s*light-dark\(\s*([^,]+?)\s*,[^)]+\)"
)
IMAGE_DATA_URI_PATTERN = re.compile(r"^data:image/[^;]+;base64,")

ET.register_namespace("", SVG_NAMESPACE)
ET.register_namespace("xlink", XLINK_NAMESPACE)


def local_name(element: ET.Element) -> str | None:
    """Return an element's tag without its namespace, None for comments."""
    if not isinstance(element.tag, str):
        return None
    return element.tag.rsplit("}", 1)[-1]


class TemplateDocument:
    """Parsed template markup, mutated in place across edits.

    The markup before the root element (XML declaration, doctype) is kept
    verbatim so serialization only changes what the edits touch.
    """

    def __init__(self, content: str, source: str = "<memory>") -> None:
        match = ROOT_START_PATTERN.search(content)
        if match is None:
            raise CoverPipelineError(
                INVALID_TEMPLATE_CODE, f"no <svg> root element in {source}"
            )
        self.source = source
        self.prolog = content[: match.start()]
        parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
        try:
            self.root = ET.fromstring(content[match.start() :], parser=parser)
        except ET.ParseError as exc:
            raise CoverPipelineError(
                INVALID_TEMPLATE_CODE, f"template is not well-formed XML: {source}: {exc}"
            ) from exc

    @classmethod
    def load(cls, template_path: str) -> "TemplateDocument":
        try:
            with open(template_path, "r", encoding="utf-8") as file_handle:
                content = file_handle.read()
        except FileNotFoundError as exc:
            raise CoverValidationError(
                NOT_FOUND_CODE, f"template file not found: {template_path}"
            ) from exc
        except IsADirectoryError as exc:
            raise CoverValidationError(
                NOT_FOUND_CODE, f"template path is a directory: {template_path}"
            ) from exc
        return cls(content, source=template_path)

    def serialize(self) -> str:
        return self.prolog + ET.tostring(self.root, encoding="unicode")

    def copy(self) -> "TemplateDocument":
        return TemplateDocument(self.serialize(), source=self.source)

    def iter_elements(self, name: str) -> Iterator[ET.Element]:
        for element in self.root.iter():
            if local_name(element) == name:
                yield element

    def iter_styled_elements(self) -> Iterator[ET.Element]:
        for element in self.root.iter():
            if isinstance(element.tag, str) and "style" in element.attrib:
                yield element

    def find_caption_container(self) -> ET.Element | None:
        for element in self.iter_elements("div"):
            if CAPTION_STYLE_PATTERN.match(element.get("style", "")):
                return element
        return None

    @property
    def caption_text(self) -> str | None:
        container = self.find_caption_container()
        if container is None:
            return None
        return "".join(container.itertext())

    def set_caption(self, text: str) -> bool:
        """Replace the caption container's content; False when there is none."""
        container = self.find_caption_container()
        if container is None:
            return False
        for child in list(container):
            container.remove(child)
        container.text = text
        return True

    @property
    def font_size(self) -> int | None:
        for element in self.iter_styled_elements():
            match = FONT_SIZE_PATTERN.search(element.get("style", ""))
            if match:
                return int(match.group(1))
        return None

    def set_font_size(self, font_size: int) -> int:
        """Rewrite every font-size declaration; returns how many changed."""
        replaced_total = 0
        for element in self.iter_styled_elements():
            style, replaced = FONT_SIZE_PATTERN.subn(
                f"font-size: {font_size}px", element.get("style", "")
            )
            if replaced:
                element.set("style", style)
                replaced_total += replaced
        return replaced_total

    @property
    def text_color(self) -> str | None:
        for element in self.iter_styled_elements():
            match = LIGHT_DARK_COLOR_PATTERN.search(element.get("style", ""))
            if match:
                return match.group(1)
        return None

    def set_text_color(self, color: str) -> bool:
        """Rewrite the first light-dark() color declaration to a single color."""
        for element in self.iter_styled_elements():
            style = element.get("style", "")
            match = LIGHT_DARK_COLOR_PATTERN.search(style)
            if match is None:
                continue
            element.set(
                "style",
                style[: match.start()]
                + f"color: light-dark({color}, {color})"
                + style[match.end() :],
            )
            return True
        return False

    def find_background_image(self) -> Tuple[ET.Element, str] | None:
        for element in self.iter_elements("image"):
            for attribute in (XLINK_HREF, "href"):
                if IMAGE_DATA_URI_PATTERN.match(element.get(attribute, "")):
                    return element, attribute
        return None

    @property
    def background_data_uri(self) -> str | None:
        found = self.find_background_image()
        if found is None:
            return None
        element, attribute = found
        return element.get(attribute)

    def set_background_data_uri(self, data_uri: str) -> bool:
        found = self.find_background_image()
        if found is None:
            return False
        element, attribute = found
        element.set(attribute, data_uri)
        return True

    def qualify(self, name: str) -> str:
        """Qualify a local tag name with the root element's namespace."""
        root_tag = self.root.tag
        if isinstance(root_tag, str) and root_tag.startswith("{"):
            return root_tag.split("}", 1)[0] + "}" + name
        return name

    def replace_first(self, name: str, replacement: ET.Element) -> bool:
        """Swap the first element with the given local name for replacement."""
        parents: Dict[ET.Element, ET.Element] = {
            child: parent for parent in self.root.iter() for child in parent
        }
        for element in self.iter_elements(name):
            parent = parents.get(element)
            if parent is None:
                return False
            replacement.tail = element.tail
            index = list(parent).index(element)
            parent.remove(element)
            parent.insert(index, replacement)
            return True
        return False


def build_data_uri(image_bytes: bytes, mime_type: str) -> str:
    """Encode image bytes as a base64 data URI."""
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def resolve_font_size(text: str, font_size: int | None) -> int:
    """Return the explicit font size, or the fitted size for text."""
    if not text:
        raise CoverValidationError(EMPTY_TEXT_CODE, "text cannot be empty")
    if font_size is not None:
        return font_size
    return fit_font_size(text)


def set_text(
    document: TemplateDocument,
    text: str,
    font_size: int | None = None,
    color: str | None = None,
) -> TemplateDocument:
    """Apply caption, font size and optional color to the document."""
    resolved_size = resolve_font_size(text, font_size)
    document.set_caption(text)
    document.set_font_size(resolved_size)
    if color:
        document.set_text_color(color)
    return document


def set_background_image(
    document: TemplateDocument, image_bytes: bytes, mime_type: str
) -> TemplateDocument:
    """Embed image bytes as the document's background data URI."""
    document.set_background_data_uri(build_data_uri(image_bytes, mime_type))
    return document
