"""SVG document render surface."""

import logging
import re
from pathlib import Path

import xml.etree.ElementTree as ET

from boardviz.models import Axis

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
LIT_CLASS = "lit"

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")

ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", "http://www.w3.org/1999/xlink")


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _number(element: ET.Element, name: str, default: float | None = None) -> float | None:
    raw = element.get(name)
    if raw is None:
        return default
    match = _NUMBER.match(raw.strip())
    return float(match.group()) if match else default


def _format(value: float) -> str:
    return f"{value:.1f}"


class SvgDiagram:
    """
    RenderSurface backed by an in-memory SVG document.

    - lit toggles the "lit" class on the element
    - position sets its x or y attribute (one decimal)
    - rotation sets transform="rotate(angle cx cy)"

    Geometry for rotation centers is read from circle/ellipse attributes, or
    a bounding box over rect, circle, ellipse and line elements (including
    the children of groups). Transforms on ancestors are not applied.
    """

    def __init__(self, root: ET.Element, source: Path | None = None):
        self._tree = ET.ElementTree(root)
        self.source = source
        self._by_id: dict[str, ET.Element] = {}
        for element in root.iter():
            element_id = element.get("id")
            if element_id:
                self._by_id[element_id] = element
        logger.debug(f"SVG diagram loaded with {len(self._by_id)} addressable elements")

    @classmethod
    def from_file(cls, path: Path) -> "SvgDiagram":
        """
        Parse an SVG file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            xml.etree.ElementTree.ParseError: If the file is not well-formed XML
        """
        tree = ET.parse(path)
        logger.info(f"Loaded diagram {path}")
        return cls(tree.getroot(), source=path)

    @classmethod
    def from_string(cls, text: str) -> "SvgDiagram":
        """Parse SVG markup."""
        return cls(ET.fromstring(text))

    @property
    def element_ids(self) -> list[str]:
        """Ids of all addressable elements, in document order."""
        return list(self._by_id)

    def element(self, element_id: str) -> ET.Element | None:
        """Raw element lookup."""
        return self._by_id.get(element_id)

    # =================================================================
    # RenderSurface
    # =================================================================

    def has_element(self, element_id: str) -> bool:
        return element_id in self._by_id

    def set_lit(self, element_id: str, lit: bool) -> None:
        element = self._by_id.get(element_id)
        if element is None:
            return
        classes = [c for c in element.get("class", "").split() if c != LIT_CLASS]
        if lit:
            classes.append(LIT_CLASS)
        if classes:
            element.set("class", " ".join(classes))
        elif "class" in element.attrib:
            del element.attrib["class"]

    def set_position(self, element_id: str, axis: Axis, position: float) -> None:
        element = self._by_id.get(element_id)
        if element is not None:
            element.set(axis.value, _format(position))

    def set_rotation(self, element_id: str, angle: float, center: tuple[float, float]) -> None:
        element = self._by_id.get(element_id)
        if element is not None:
            cx, cy = center
            element.set("transform", f"rotate({_format(angle)} {_format(cx)} {_format(cy)})")

    def circle_center(self, element_id: str) -> tuple[float, float] | None:
        element = self._by_id.get(element_id)
        if element is None or _local(element.tag) not in ("circle", "ellipse"):
            return None
        return (_number(element, "cx", 0.0), _number(element, "cy", 0.0))

    def bbox_center(self, element_id: str) -> tuple[float, float] | None:
        element = self._by_id.get(element_id)
        if element is None:
            return None
        box = self._bbox(element)
        if box is None:
            return None
        x0, y0, x1, y1 = box
        return ((x0 + x1) / 2, (y0 + y1) / 2)

    def _bbox(self, element: ET.Element) -> tuple[float, float, float, float] | None:
        boxes = [b for b in (self._shape_bbox(e) for e in element.iter()) if b is not None]
        if not boxes:
            return None
        return (
            min(b[0] for b in boxes),
            min(b[1] for b in boxes),
            max(b[2] for b in boxes),
            max(b[3] for b in boxes),
        )

    @staticmethod
    def _shape_bbox(element: ET.Element) -> tuple[float, float, float, float] | None:
        tag = _local(element.tag)
        if tag == "rect":
            x, y = _number(element, "x", 0.0), _number(element, "y", 0.0)
            w, h = _number(element, "width", 0.0), _number(element, "height", 0.0)
            return (x, y, x + w, y + h)
        if tag == "circle":
            cx, cy, r = _number(element, "cx", 0.0), _number(element, "cy", 0.0), _number(element, "r", 0.0)
            return (cx - r, cy - r, cx + r, cy + r)
        if tag == "ellipse":
            cx, cy = _number(element, "cx", 0.0), _number(element, "cy", 0.0)
            rx, ry = _number(element, "rx", 0.0), _number(element, "ry", 0.0)
            return (cx - rx, cy - ry, cx + rx, cy + ry)
        if tag == "line":
            x1, y1 = _number(element, "x1", 0.0), _number(element, "y1", 0.0)
            x2, y2 = _number(element, "x2", 0.0), _number(element, "y2", 0.0)
            return (min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))
        return None

    # =================================================================
    # Output
    # =================================================================

    def to_string(self) -> str:
        """Serialize the current document."""
        return ET.tostring(self._tree.getroot(), encoding="unicode")

    def save(self, path: Path | None = None) -> Path:
        """
        Write the current document to `path` (default: the file it was loaded from).

        Returns:
            The path written
        """
        target = path or self.source
        if target is None:
            raise ValueError("No path given and diagram was not loaded from a file")
        target.parent.mkdir(parents=True, exist_ok=True)
        self._tree.write(target, encoding="utf-8", xml_declaration=True)
        logger.info(f"Wrote diagram snapshot to {target}")
        return target
