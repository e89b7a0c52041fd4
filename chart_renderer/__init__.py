"""
Chart Renderer
Declarative charts from tabular data: aesthetic mapping + geometry -> rendered image.
"""

__version__ = "1.0.0"

# Import main classes for easy access
from .chart_framework import ChartRenderingFramework
from .core.base_component import BaseComponent, RenderContext
from .core.data_loader import DataLoader, Dataset
from .core.categorical_detector import CategoricalDetector
from .core.mapping import AestheticMapping, FacetSpec, LayerOptions
from .core.visualization_handler import ChartRenderer, RenderedChart
from .core.report_generator import ReportGenerator
from .core.constants import Channel, FieldKind, Geometry, ScaleTransform
from .core.errors import (
    ChartError,
    ConfigurationError,
    EmptyDataset,
    InconsistentSchema,
    InvalidGeometry,
    InvalidMapping,
    InvalidScale,
    TooManyPanels,
    TypeMismatch,
)

__all__ = [
    'ChartRenderingFramework',
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
    'Channel',
    'FieldKind',
    'Geometry',
    'ScaleTransform',
    'ChartError',
    'ConfigurationError',
    'EmptyDataset',
    'InconsistentSchema',
    'InvalidGeometry',
    'InvalidMapping',
    'InvalidScale',
    'TooManyPanels',
    'TypeMismatch',
]
