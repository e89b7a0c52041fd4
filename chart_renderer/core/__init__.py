#!/usr/bin/env python3
"""
Core module for the chart renderer.
Contains the modular components for data loading, field classification, mapping
validation, scales, faceting, drawing and reporting.
"""

from .base_component import BaseComponent, RenderContext
from .data_loader import DataLoader, Dataset
from .categorical_detector import CategoricalDetector
from .mapping import AestheticMapping, FacetSpec, LayerOptions
from .visualization_handler import ChartRenderer, RenderedChart
from .report_generator import ReportGenerator
from .chart_registry import ChartRegistry
from .constants import Channel, FacetKind, FieldKind, Geometry, ScaleTransform

__all__ = [
    'BaseComponent',
    'RenderContext',
    'DataLoader',
    'Dataset',
    'CategoricalDetector',
    'AestheticMapping',
    'FacetSpec',
    'LayerOptions',
    'ChartRenderer',
    'RenderedChart',
    'ReportGenerator',
    'ChartRegistry',
    'Channel',
    'FacetKind',
    'FieldKind',
    'Geometry',
    'ScaleTransform',
]
