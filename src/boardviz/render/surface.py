"""Render surface protocol: the only egress of the visual state engine."""

from typing import Protocol, runtime_checkable

from boardviz.models import Axis


@runtime_checkable
class RenderSurface(Protocol):
    """
    A diagram the visual state engine can draw on.

    Elements are addressed by id. Implementations decide how lit,
    position and rotation are shown (SVG attributes, a canvas, a test double).
    """

    def has_element(self, element_id: str) -> bool:
        """Check whether the diagram contains an element."""
        ...

    def set_lit(self, element_id: str, lit: bool) -> None:
        """Show or clear the lit highlight on an element."""
        ...

    def set_position(self, element_id: str, axis: Axis, position: float) -> None:
        """Move an element to `position` along `axis`."""
        ...

    def set_rotation(self, element_id: str, angle: float, center: tuple[float, float]) -> None:
        """Rotate an element by `angle` degrees around `center`."""
        ...

    def circle_center(self, element_id: str) -> tuple[float, float] | None:
        """Center of a circle or ellipse element, or None for other shapes."""
        ...

    def bbox_center(self, element_id: str) -> tuple[float, float] | None:
        """Center of an element's bounding box, or None if it has no geometry."""
        ...
