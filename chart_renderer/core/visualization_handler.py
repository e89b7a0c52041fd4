#!/usr/bin/env python3
"""
Visualization Handler - Turns a dataset, an aesthetic mapping and a geometry into a chart
"""

import io
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, List, Sequence, Union

import matplotlib
import numpy as np
import pandas as pd
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.cm import ScalarMappable
from matplotlib.figure import Figure
from matplotlib.lines import Line2D

from .base_component import BaseComponent
from .chart_registry import ChartRegistry
from .constants import Channel, DEFAULT_IMAGE_FORMAT, Geometry, ScaleTransform
from .data_loader import DataLoader, Dataset
from .errors import EmptyDataset, InvalidGeometry
from .faceting import FacetLayout, Panel, partition
from .geoms import register_default_geoms
from .mapping import (
    AestheticMapping,
    FacetSpec,
    LayerOptions,
    parse_geometry,
    parse_scales,
    resolve_facet,
    validate_request,
)
from .scales import Encodings

_SVG_HASH_SALT = "chart-renderer"
# rc_context swaps global rcParams; concurrent saves must not interleave
_RC_LOCK = threading.Lock()

# Metadata keys that would otherwise embed the render time in vector output
_TIMESTAMP_METADATA = {
    "svg": {"Date": None},
    "pdf": {"CreationDate": None, "ModDate": None},
}


@dataclass
class RenderedChart:
    """A rendered figure together with the request that produced it."""
    figure: Figure
    panels: List[Panel]
    geometry: Geometry
    mapping: AestheticMapping
    dataset_name: str
    nrows: int = 1
    ncols: int = 1
    facet: Optional[FacetSpec] = None
    scales: Dict[Channel, ScaleTransform] = field(default_factory=dict)
    dpi: int = 100

    @property
    def panel_count(self) -> int:
        return len(self.panels)

    @property
    def record_count(self) -> int:
        return sum(panel.record_count for panel in self.panels)

    def to_bytes(self, fmt: str = DEFAULT_IMAGE_FORMAT) -> bytes:
        """Encode the chart as png (raster) or svg/pdf (vector)."""
        fmt = fmt.lower().lstrip(".")
        buffer = io.BytesIO()
        # SVG element ids are salted with a random uuid unless a salt is set
        with _RC_LOCK, matplotlib.rc_context({"svg.hashsalt": _SVG_HASH_SALT}):
            self.figure.savefig(
                buffer,
                format=fmt,
                dpi=self.dpi,
                bbox_inches="tight",
                facecolor="white",
                metadata=_TIMESTAMP_METADATA.get(fmt),
            )
        return buffer.getvalue()

    def save(self, path: Union[str, Path], fmt: Optional[str] = None) -> Path:
        """Write the chart to a file; the format defaults to the file suffix."""
        path = Path(path)
        fmt = fmt or path.suffix.lstrip(".") or DEFAULT_IMAGE_FORMAT
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_bytes(fmt))
        return path


class ChartRenderer(BaseComponent):
    """Renders declarative chart requests with matplotlib."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        output_directory: Optional[str] = None,
        context=None,
        config_override=None,
    ):
        super().__init__(config_file, output_directory, context=context, config_override=config_override)
        self.chart_registry = register_default_geoms(ChartRegistry())
        self._loader = DataLoader(context=self.context)

    def render(
        self,
        dataset: Union[Dataset, pd.DataFrame, Sequence[Dict[str, Any]]],
        mapping: Union[AestheticMapping, Dict[str, str]],
        geometry: Union[Geometry, str],
        scales: Optional[Dict[Any, Any]] = None,
        facet: Union[FacetSpec, Dict[str, Any], str, None] = None,
        options: Union[LayerOptions, Dict[str, Any], None] = None,
    ) -> RenderedChart:
        """
        Render one chart.

        Args:
            dataset: Dataset, DataFrame or list of records (never modified)
            mapping: Channel -> field name
            geometry: Drawing mode (point, line, bar, area, tile, smooth)
            scales: Optional channel -> transform (identity, log10, sqrt, reverse)
            facet: Optional wrap/grid specification
            options: Optional layer options (alpha, jitter, constant color, ...)

        Returns:
            RenderedChart with the figure and its panels

        Raises:
            EmptyDataset, InvalidMapping, TypeMismatch, InvalidGeometry, InvalidScale, TooManyPanels
        """
        dataset = self._as_dataset(dataset)
        if len(dataset) == 0:
            raise EmptyDataset(f"Dataset {dataset.name} has no records to render")

        geometry = parse_geometry(geometry)
        mapping = mapping if isinstance(mapping, AestheticMapping) else AestheticMapping.from_dict(mapping)
        scales = parse_scales(scales)
        facet = resolve_facet(mapping, FacetSpec.from_config(facet))
        options = options if isinstance(options, LayerOptions) else LayerOptions.from_dict(options)

        validate_request(dataset.schema, mapping, geometry, scales, facet)
        if not self.chart_registry.is_registered(geometry):
            raise InvalidGeometry(f"No renderer registered for geometry: {geometry.value}")

        settings = self.render_settings
        encodings = Encodings(dataset.frame, dataset.schema, mapping, scales, settings, options)
        layout = partition(dataset.frame, facet, int(settings["max_facet_panels"]))

        figure = self._create_figure(layout)
        seed = options.jitter_seed if options.jitter_seed is not None else settings["jitter_seed"]
        rng = np.random.default_rng(seed)
        groups = mapping.group_fields(dataset.schema)

        axes_grid = figure.subplots(layout.nrows, layout.ncols, sharex=True, sharey=True, squeeze=False)
        used = set()
        for panel in layout.panels:
            ax = axes_grid[panel.row][panel.col]
            used.add((panel.row, panel.col))
            panel.axes = ax
            panel.artists = self.chart_registry.render(
                geometry,
                ax=ax,
                frame=panel.frame,
                mapping=mapping,
                encodings=encodings,
                options=options,
                settings=settings,
                rng=rng,
                groups=groups,
            ) or []
            self._style_panel(ax, panel, encodings)

        self._hide_unused_axes(axes_grid, layout, used)
        self._label_axes(layout, mapping, options)
        self._add_legends(figure, [panel.axes for panel in layout.panels], mapping, encodings, scales)
        if options.title:
            figure.suptitle(options.title, fontsize=settings["title_size"], fontfamily=settings["font_family"])

        self.logger.info(
            f"Rendered {geometry.value} chart of {dataset.name}: {len(dataset):,} records in "
            f"{len(layout.panels)} panel(s)"
        )

        return RenderedChart(
            figure=figure,
            panels=layout.panels,
            geometry=geometry,
            mapping=mapping,
            dataset_name=dataset.name,
            nrows=layout.nrows,
            ncols=layout.ncols,
            facet=facet,
            scales=scales,
            dpi=int(settings["dpi"]),
        )

    def render_to_file(self, output_file: Union[str, Path], *args, **kwargs) -> Path:
        """Render a chart and save it; the format follows the file suffix."""
        chart = self.render(*args, **kwargs)
        return chart.save(output_file)

    def _as_dataset(self, dataset) -> Dataset:
        if isinstance(dataset, Dataset):
            return dataset
        if isinstance(dataset, pd.DataFrame):
            return self._loader.from_frame(dataset)
        return self._loader.from_records(dataset)

    def _create_figure(self, layout: FacetLayout) -> Figure:
        """Create a standalone figure (no pyplot state) sized to the panel layout."""
        settings = self.render_settings
        figure = Figure(
            figsize=(settings["panel_width"] * layout.ncols, settings["panel_height"] * layout.nrows),
            dpi=settings["dpi"],
            facecolor="white",
        )
        FigureCanvasAgg(figure)
        return figure

    def _style_panel(self, ax, panel: Panel, encodings: Encodings):
        """Light grid, no top/right spines, shared scales and a strip title."""
        settings = self.render_settings
        ax.grid(True, alpha=settings["grid_alpha"])
        ax.set_axisbelow(True)
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)
        ax.tick_params(labelsize=settings["font_size"])

        encodings.x.configure_axis(ax, "x")
        if encodings.x.is_discrete:
            ax.set_xlim(-0.5, len(encodings.x.levels) - 0.5)

        if encodings.y is not None:
            encodings.y.configure_axis(ax, "y")
            if encodings.y.is_discrete:
                ax.set_ylim(-0.5, len(encodings.y.levels) - 0.5)
        elif encodings.y_transform == ScaleTransform.LOG10:
            ax.set_yscale("log")
        elif encodings.y_transform == ScaleTransform.SQRT:
            ax.set_yscale("function", functions=(np.sqrt, np.square))
        elif encodings.y_transform == ScaleTransform.REVERSE:
            ax.yaxis.set_inverted(True)

        if panel.title is not None:
            ax.set_title(panel.title, fontsize=settings["font_size"], fontfamily=settings["font_family"])

    def _hide_unused_axes(self, axes_grid, layout: FacetLayout, used: set):
        """Hide empty wrap cells and restore x tick labels on the panels above them."""
        for r in range(layout.nrows):
            for c in range(layout.ncols):
                if (r, c) in used:
                    continue
                axes_grid[r][c].set_visible(False)
                if r > 0 and (r - 1, c) in used:
                    axes_grid[r - 1][c].xaxis.set_tick_params(labelbottom=True)

    def _label_axes(self, layout: FacetLayout, mapping: AestheticMapping, options: LayerOptions):
        settings = self.render_settings
        x_label = options.x_label or mapping.x
        y_label = options.y_label or mapping.y or "count"
        bottom = {}
        for panel in layout.panels:
            bottom[panel.col] = max(bottom.get(panel.col, -1), panel.row)
        for panel in layout.panels:
            if panel.row == bottom[panel.col]:
                panel.axes.set_xlabel(x_label, fontsize=settings["font_size"], fontfamily=settings["font_family"])
            if panel.col == 0:
                panel.axes.set_ylabel(y_label, fontsize=settings["font_size"], fontfamily=settings["font_family"])

    def _add_legends(self, figure: Figure, axes: List[Any], mapping: AestheticMapping,
                     encodings: Encodings, scales: Dict[Channel, ScaleTransform]):
        """Discrete color/shape/size legends to the right; a colorbar for continuous color."""
        settings = self.render_settings
        legends = []

        color, shape = encodings.color, encodings.shape
        if color.is_mapped and not color.is_continuous:
            same_field = shape.is_mapped and shape.field == color.field
            handles = [
                Line2D([], [], linestyle="none", markersize=8,
                       marker=shape.marker_for_level(level) if same_field else "s",
                       markerfacecolor=color.color_for_level(level), markeredgewidth=0)
                for level in color.levels
            ]
            legends.append((color.field, handles, [str(level) for level in color.levels]))
        if shape.is_mapped and not (color.is_mapped and shape.field == color.field):
            handles = [
                Line2D([], [], linestyle="none", markersize=8, marker=shape.marker_for_level(level),
                       markerfacecolor="#444444", markeredgewidth=0)
                for level in shape.levels
            ]
            legends.append((shape.field, handles, [str(level) for level in shape.levels]))
        if encodings.size.is_mapped and encodings.size.vmin is not None:
            values = encodings.size.legend_values()
            # Legend values are evenly spaced, so their areas are too
            areas = np.linspace(encodings.size.min_area, encodings.size.max_area, len(values))
            handles = [
                Line2D([], [], linestyle="none", marker="o", markersize=float(np.sqrt(area)),
                       markerfacecolor="#444444", markeredgewidth=0)
                for area in areas
            ]
            legends.append((self._channel_title(encodings.size.field, scales.get(Channel.SIZE)), handles,
                            [f"{value:.3g}" for value in values]))

        top = 1.0
        line_height = settings["font_size"] * 1.8 / 72.0 / figure.get_figheight()
        for title, handles, labels in legends:
            figure.legend(handles, labels, title=title, loc="upper left", bbox_to_anchor=(1.0, top),
                          frameon=False, fontsize=settings["font_size"])
            top -= line_height * (len(labels) + 2)

        if color.is_continuous:
            mappable = ScalarMappable(norm=color.norm, cmap=color.cmap)
            colorbar = figure.colorbar(mappable, ax=axes, fraction=0.05, pad=0.04)
            colorbar.set_label(self._channel_title(color.field, scales.get(Channel.COLOR)),
                               fontsize=settings["font_size"])

    @staticmethod
    def _channel_title(field_name: str, transform: Optional[ScaleTransform]) -> str:
        if transform is None or transform == ScaleTransform.IDENTITY:
            return field_name
        return f"{transform.value}({field_name})"
