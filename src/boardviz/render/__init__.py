"""Render surfaces for the visual state engine."""

from .surface import RenderSurface
from .svg import SvgDiagram

__all__ = ["RenderSurface", "SvgDiagram"]
