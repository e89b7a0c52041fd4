from __future__ import annotations

import pytest

from chart_renderer.core.chart_registry import ChartRegistry
from chart_renderer.core.constants import Geometry
from chart_renderer.core.errors import InvalidGeometry
from chart_renderer.core.geoms import register_default_geoms


def test_default_geoms_are_registered() -> None:
    registry = register_default_geoms(ChartRegistry())
    assert registry.registered() == sorted(g.value for g in Geometry)


def test_render_delegates_keyword_arguments() -> None:
    registry = ChartRegistry()
    registry.register(Geometry.POINT, lambda **kwargs: sorted(kwargs))

    assert registry.is_registered("point")
    assert registry.render(Geometry.POINT, ax=None, frame=None) == ["ax", "frame"]


def test_render_unregistered_geometry() -> None:
    with pytest.raises(InvalidGeometry):
        ChartRegistry().render(Geometry.TILE)
