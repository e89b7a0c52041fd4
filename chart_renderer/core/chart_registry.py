"""
Simple geometry registry to decouple geometry selection from drawing logic.

New geometries can be added by registering a drawing function without
modifying call sites or adding conditional logic.
"""

from typing import Callable, Dict, Any, List

from .constants import Geometry
from .errors import InvalidGeometry


class ChartRegistry:
    """Registry mapping geometries to drawing callables."""

    def __init__(self):
        self._renderers: Dict[str, Callable[..., Any]] = {}

    def register(self, geometry: Geometry, renderer: Callable[..., Any]) -> None:
        """Register a drawing function for a geometry."""
        self._renderers[Geometry(geometry).value] = renderer

    def is_registered(self, geometry: Geometry) -> bool:
        return Geometry(geometry).value in self._renderers

    def registered(self) -> List[str]:
        return sorted(self._renderers)

    def render(self, geometry: Geometry, **kwargs):
        """Draw a geometry by delegating to the registered function."""
        key = Geometry(geometry).value
        if key not in self._renderers:
            raise InvalidGeometry(f"No renderer registered for geometry: {key}")
        return self._renderers[key](**kwargs)
