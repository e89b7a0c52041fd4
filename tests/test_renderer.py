from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import matplotlib
import numpy as np
import pandas as pd
import pytest

from chart_renderer import (
    AestheticMapping,
    ChartRenderer,
    EmptyDataset,
    FacetSpec,
    Geometry,
    InvalidGeometry,
    InvalidMapping,
    InvalidScale,
    TooManyPanels,
    TypeMismatch,
)


# 1) The five-car scatter


def test_point_chart_places_one_marker_per_record(renderer: ChartRenderer, car_records: list[dict]) -> None:
    chart = renderer.render(car_records, {"x": "weight", "y": "mileage"}, "point")

    assert chart.geometry == Geometry.POINT
    assert chart.panel_count == 1
    offsets = np.asarray(chart.panels[0].artists[0].get_offsets())
    expected = [[r["weight"], r["mileage"]] for r in car_records]
    np.testing.assert_allclose(offsets, expected)


def test_size_mapped_to_category_is_type_mismatch(renderer: ChartRenderer, car_records: list[dict]) -> None:
    with pytest.raises(TypeMismatch) as excinfo:
        renderer.render(car_records, {"x": "weight", "y": "mileage", "size": "origin"}, "point")
    assert excinfo.value.channel == "size"
    assert excinfo.value.field == "origin"


def test_absent_field_is_invalid_mapping(renderer: ChartRenderer, car_records: list[dict]) -> None:
    with pytest.raises(InvalidMapping) as excinfo:
        renderer.render(car_records, {"x": "weight", "y": "horsepower"}, "point")
    assert excinfo.value.field == "horsepower"


def test_absent_facet_field_is_invalid_mapping(renderer: ChartRenderer, car_records: list[dict]) -> None:
    with pytest.raises(InvalidMapping):
        renderer.render(car_records, {"x": "weight", "y": "mileage"}, "point", facet=FacetSpec.wrap("region"))


def test_empty_dataset_is_rejected(renderer: ChartRenderer) -> None:
    with pytest.raises(EmptyDataset):
        renderer.render([], {"x": "weight", "y": "mileage"}, "point")
    with pytest.raises(EmptyDataset):
        renderer.render(pd.DataFrame({"weight": [], "mileage": []}), {"x": "weight", "y": "mileage"}, "point")


def test_unknown_geometry(renderer: ChartRenderer, car_records: list[dict]) -> None:
    with pytest.raises(InvalidGeometry):
        renderer.render(car_records, {"x": "weight", "y": "mileage"}, "pie")


def test_geometry_aliases(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "class", "y": "hwy"}, "geom_col")
    assert chart.geometry == Geometry.BAR


# 2) Idempotence


def test_rendering_twice_gives_identical_png(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    kwargs = dict(
        mapping={"x": "displ", "y": "hwy", "color": "class"},
        geometry="point",
        options={"jitter_width": 0.1, "jitter_height": 0.5, "alpha": 0.7},
    )
    first = renderer.render(mpg_frame, **kwargs).to_bytes("png")
    second = renderer.render(mpg_frame, **kwargs).to_bytes("png")
    assert first == second
    assert first.startswith(b"\x89PNG")


def test_render_does_not_modify_input(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    before = mpg_frame.copy()
    renderer.render(mpg_frame, {"x": "displ", "y": "hwy"}, "point", facet="~ class")
    pd.testing.assert_frame_equal(mpg_frame, before)


# 3) Faceting


def test_wrap_produces_one_panel_per_value(renderer: ChartRenderer, loader, mpg_frame: pd.DataFrame) -> None:
    dataset = loader.from_frame(mpg_frame, "mpg")
    chart = renderer.render(dataset, {"x": "displ", "y": "hwy"}, "point", facet=FacetSpec.wrap("class"))

    assert chart.panel_count == 3
    assert [panel.key for panel in chart.panels] == [("compact",), ("midsize",), ("suv",)]

    combined = pd.concat([panel.frame for panel in chart.panels]).sort_index()
    pd.testing.assert_frame_equal(combined, dataset.frame)
    assert chart.record_count == len(dataset)


def test_facet_channel_in_mapping_means_wrap(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "displ", "y": "hwy", "facet": "drv"}, "point")
    assert chart.panel_count == 3
    assert chart.facet == FacetSpec.wrap("drv")


def test_grid_produces_cross_product(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "displ", "y": "hwy"}, "point", facet=FacetSpec.grid("drv", "cyl"))

    # 3 drive trains x 3 cylinder counts, including combinations without records
    assert (chart.nrows, chart.ncols) == (3, 3)
    assert chart.panel_count == 9
    assert chart.record_count == len(mpg_frame)
    assert any(panel.record_count == 0 for panel in chart.panels)


def test_too_many_panels(mpg_frame: pd.DataFrame) -> None:
    renderer = ChartRenderer(config_override={"render_defaults": {"max_facet_panels": 2}})
    with pytest.raises(TooManyPanels):
        renderer.render(mpg_frame, {"x": "displ", "y": "hwy"}, "point", facet="~ class")


# 4) Channel kinds


@pytest.mark.parametrize(
    "mapping, geometry",
    [
        ({"x": "class", "y": "hwy"}, "point"),
        ({"x": "class", "y": "hwy"}, "line"),
        ({"x": "displ", "y": "class"}, "bar"),
        ({"x": "displ", "y": "hwy", "shape": "cty"}, "point"),
    ],
)
def test_discrete_field_on_numeric_channel(renderer: ChartRenderer, mpg_frame: pd.DataFrame, mapping, geometry) -> None:
    with pytest.raises(TypeMismatch):
        renderer.render(mpg_frame, mapping, geometry)


def test_y_is_required_except_for_bar(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    with pytest.raises(InvalidMapping):
        renderer.render(mpg_frame, {"x": "displ"}, "point")
    chart = renderer.render(mpg_frame, {"x": "class"}, "bar")
    assert chart.panels[0].axes.get_ylabel() == "count"


# 5) Geometries


def test_bar_counts_records_per_category(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "class"}, "bar")
    bars = chart.panels[0].artists[0]
    heights = [patch.get_height() for patch in bars.patches]
    assert heights == [4.0, 4.0, 4.0]


def test_bar_sums_y_and_stacks_by_color(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "class", "y": "cty", "color": "drv"}, "bar")
    containers = chart.panels[0].artists
    # One stacked layer per drive train, in sorted order: 4, f, r
    assert len(containers) == 3

    totals = {}
    for container in containers:
        for patch in container.patches:
            slot = round(patch.get_x() + patch.get_width() / 2)
            totals[slot] = max(totals.get(slot, 0.0), patch.get_y() + patch.get_height())
    expected = mpg_frame.groupby("class")["cty"].sum().tolist()
    assert [totals[i] for i in range(3)] == expected


def test_line_draws_one_line_per_color_group(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "displ", "y": "hwy", "color": "drv"}, "line")
    lines = chart.panels[0].artists
    assert len(lines) == 3
    for line in lines:
        xdata = np.asarray(line.get_xdata())
        assert np.all(np.diff(xdata) >= 0)


def test_line_over_dates(renderer: ChartRenderer) -> None:
    prices = pd.DataFrame(
        {
            "date": pd.date_range("2024-01-01", periods=30, freq="D"),
            "close": np.linspace(100.0, 130.0, 30),
        }
    )
    chart = renderer.render(prices, {"x": "date", "y": "close"}, "line")
    assert len(chart.panels[0].artists[0].get_xdata()) == 30


def test_area_and_smooth(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    area = renderer.render(mpg_frame, {"x": "displ", "y": "hwy"}, "area")
    assert len(area.panels[0].artists) == 1

    smooth = renderer.render(mpg_frame, {"x": "displ", "y": "hwy"}, "smooth")
    trend = smooth.panels[0].artists[0]
    assert len(trend.get_xdata()) == 80
    assert trend.get_xdata()[0] == pytest.approx(mpg_frame["displ"].min())
    assert trend.get_xdata()[-1] == pytest.approx(mpg_frame["displ"].max())


def test_smooth_skips_groups_with_too_few_points(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    # drv r has two records with two distinct displacements
    chart = renderer.render(mpg_frame, {"x": "displ", "y": "hwy", "color": "drv"}, "smooth")
    assert len(chart.panels[0].artists) == 2


def test_tile_with_discrete_axes_and_continuous_fill(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "class", "y": "drv", "color": "hwy"}, "tile")
    collection = chart.panels[0].artists[0]
    assert len(collection.get_paths()) == len(mpg_frame)
    # A colorbar adds one axes beside the panel
    assert len(chart.figure.axes) == 2


def test_shape_mapping_splits_markers(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "displ", "y": "hwy", "shape": "drv"}, "point")
    artists = chart.panels[0].artists
    assert len(artists) == 3
    assert sum(len(a.get_offsets()) for a in artists) == len(mpg_frame)


# 6) Scales and output


def test_log_scale_on_y(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "displ", "y": "hwy"}, "point", scales={"y": "log10"})
    assert chart.panels[0].axes.get_yscale() == "log"


def test_reverse_scale_inverts_shared_axes(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    chart = renderer.render(mpg_frame, {"x": "displ", "y": "hwy"}, "point", scales={"x": "reverse"}, facet="~ drv")
    assert all(panel.axes.xaxis_inverted() for panel in chart.panels)


@pytest.mark.parametrize(
    "scales",
    [
        {"color": "log10"},
        {"y": "cube"},
        {"size": "sqrt"},
    ],
)
def test_invalid_scales(renderer: ChartRenderer, mpg_frame: pd.DataFrame, scales) -> None:
    with pytest.raises(InvalidScale):
        renderer.render(mpg_frame, {"x": "displ", "y": "hwy", "color": "class"}, "point", scales=scales)


def test_log_scale_needs_positive_values(renderer: ChartRenderer) -> None:
    frame = pd.DataFrame({"x": [0.0, 1.0, 2.0], "y": [1.0, 2.0, 3.0]})
    with pytest.raises(InvalidScale):
        renderer.render(frame, {"x": "x", "y": "y"}, "point", scales={"x": "log10"})


def test_save_uses_suffix_for_format(renderer: ChartRenderer, car_records: list[dict], tmp_path: Path) -> None:
    chart = renderer.render(car_records, AestheticMapping(x="weight", y="mileage", color="origin"), Geometry.POINT)
    svg = chart.save(tmp_path / "charts" / "cars.svg")
    assert svg.exists()
    assert b"<svg" in svg.read_bytes()

    png = renderer.render_to_file(tmp_path / "cars.png", car_records, {"x": "weight", "y": "mileage"}, "point")
    assert png.read_bytes().startswith(b"\x89PNG")


def test_svg_output_is_reproducible(renderer: ChartRenderer, car_records: list[dict]) -> None:
    first = renderer.render(car_records, {"x": "weight", "y": "mileage"}, "point").to_bytes("svg")
    second = renderer.render(car_records, {"x": "weight", "y": "mileage"}, "point").to_bytes("svg")
    assert first == second


def test_svg_output_is_reproducible_across_threads(renderer: ChartRenderer, mpg_frame: pd.DataFrame) -> None:
    salt_before = matplotlib.rcParams["svg.hashsalt"]
    charts = [
        renderer.render(mpg_frame, {"x": "displ", "y": "hwy", "color": "class"}, "point", facet="~ drv")
        for _ in range(6)
    ]
    with ThreadPoolExecutor(max_workers=6) as pool:
        outputs = list(pool.map(lambda chart: chart.to_bytes("svg"), charts))

    assert len(set(outputs)) == 1
    assert matplotlib.rcParams["svg.hashsalt"] == salt_before


def test_timedelta_color_renders_with_colorbar(renderer: ChartRenderer) -> None:
    laps = pd.DataFrame({
        "lap": [1.0, 2.0, 3.0, 4.0],
        "speed": [180.0, 184.0, 183.0, 187.0],
        "elapsed": pd.to_timedelta([0, 95, 188, 280], unit="s"),
    })
    chart = renderer.render(laps, {"x": "lap", "y": "speed", "color": "elapsed"}, "point")

    assert len(chart.panels[0].artists[0].get_offsets()) == 4
    assert len(chart.figure.axes) == 2
