"""boardviz: live controller visualizer for SVG board diagrams."""

__version__ = "0.1.0"

# Core pipeline
from .core import EventPipeline, Recorder, VisualStateEngine

# Mapping
from .mapping import MappingResolver, MappingTable

__all__ = [
    "EventPipeline",
    "MappingResolver",
    "MappingTable",
    "Recorder",
    "VisualStateEngine",
]
