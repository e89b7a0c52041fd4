#!/usr/bin/env python3
"""
Main Chart Rendering Framework - Orchestrates all components
"""

import sys
from pathlib import Path
from typing import Dict, Any, List, Optional

from .core.base_component import RenderContext, load_any_config
from .core.constants import CONFIG_KEY_CHARTS, DEFAULT_IMAGE_FORMAT
from .core.data_loader import DataLoader, Dataset
from .core.errors import ChartError, ConfigurationError
from .core.report_generator import ReportGenerator
from .core.visualization_handler import ChartRenderer


class ChartRenderingFramework:
    """
    Main framework class that orchestrates all rendering components.

    This class coordinates dataset loading, chart rendering, file output and
    report generation for every chart listed in a chart-request config.
    """

    def __init__(self, config_file: str, output_directory: str = None, config_override: Dict[str, Any] = None):
        """
        Initialize the chart rendering framework.

        Args:
            config_file: Path to the chart-request configuration (YAML or JSON)
            output_directory: Path for rendered charts and reports
                (default: the config's output_directory, else ./output beside the config)
            config_override: Dict deep-merged over the loaded configuration
        """
        if output_directory is None and not (config_override or {}).get('output_directory'):
            output_directory = self._default_output_directory(config_file)

        # Initialize loader first to build shared context (config, logging, paths)
        self.data_loader = DataLoader(config_file, output_directory, config_override=config_override)
        shared_ctx: RenderContext = self.data_loader.context

        # Initialize dependent components with the shared context
        self.renderer = ChartRenderer(context=shared_ctx)
        self.report_generator = ReportGenerator(context=shared_ctx)

        # Use data_loader as the primary reference for shared properties
        self.config = self.data_loader.config
        self.logger = self.data_loader.logger
        self.output_dir = self.data_loader.output_dir

        # Data containers
        self.datasets: Dict[str, Dataset] = {}

        self.logger.info(f"Framework initialized for {self.data_loader.get_project_name()}")

    @staticmethod
    def _default_output_directory(config_file: str) -> Optional[str]:
        """Use the config's own output_directory when set, else ./output beside the config."""
        try:
            temp_config = load_any_config(Path(config_file))
        except (FileNotFoundError, ConfigurationError):
            return None
        if temp_config.get('output_directory'):
            # Resolved relative to the config file by the components
            return None
        return str(Path(config_file).parent.resolve() / "output")

    def load_datasets(self) -> Dict[str, Dataset]:
        """Load all datasets using the data loader."""
        self.datasets = self.data_loader.load_datasets()
        return self.datasets

    def render_chart(self, chart_name: str, chart_config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Render one configured chart to a file.

        Args:
            chart_name: Name of the chart (used for the default output filename)
            chart_config: Canonical chart entry (dataset/geometry/mapping/scales/facet/options/output)

        Returns:
            Chart summary dictionary

        Raises:
            ChartError: if the chart request is invalid
        """
        dataset_name = chart_config.get('dataset')
        if dataset_name not in self.datasets:
            raise ConfigurationError(f"Chart '{chart_name}' refers to unknown or unloaded dataset '{dataset_name}'")

        chart = self.renderer.render(
            self.datasets[dataset_name],
            chart_config.get('mapping', {}),
            chart_config['geometry'],
            scales=chart_config.get('scales'),
            facet=chart_config.get('facet'),
            options=chart_config.get('options'),
        )

        output_name = chart_config.get('output') or f"{chart_name}.{DEFAULT_IMAGE_FORMAT}"
        output_file = chart.save(self.output_dir / output_name)
        # Release the figure once it is written
        chart.figure.clear()

        self.logger.info(f"Chart {chart_name} saved: {output_file}")
        return self.report_generator.describe_chart(chart_name, chart, output_file)

    def render_all_charts(self) -> List[Dict[str, Any]]:
        """Render every configured chart; a failing chart is logged and recorded, not fatal."""
        charts = self.config.get(CONFIG_KEY_CHARTS, {})
        if not charts:
            self.logger.info("No charts configured")
            return []

        # Load datasets if not already loaded
        if not self.datasets:
            self.load_datasets()

        summaries = []
        for chart_name, chart_config in charts.items():
            if not chart_config.get('enabled', True):
                continue
            try:
                summaries.append(self.render_chart(chart_name, chart_config))
            except ChartError as e:
                self.logger.error(f"Failed to render chart {chart_name}: {e}")
                summaries.append(self.report_generator.describe_failure(chart_name, e))

        rendered = sum(1 for s in summaries if s['status'] == 'rendered')
        self.logger.info(f"Rendered {rendered}/{len(summaries)} charts")
        return summaries

    def generate_report(self) -> List[Dict[str, Any]]:
        """Render all charts, then write the JSON summary and the text report."""
        summaries = self.render_all_charts()
        self.report_generator.save_summary_json(summaries, self.data_loader.get_dataset_summary())
        self.report_generator.generate_text_report(summaries)
        return summaries


# Main execution function
def main(argv: Optional[List[str]] = None) -> int:
    """Main function for running the rendering framework."""
    args = sys.argv[1:] if argv is None else argv

    if len(args) < 1:
        print("Usage: python -m chart_renderer.chart_framework <config_file> [output_directory]")
        return 1

    config_file = args[0]
    output_directory = args[1] if len(args) > 1 else None

    framework = ChartRenderingFramework(config_file, output_directory)
    summaries = framework.generate_report()
    failed = [s for s in summaries if s['status'] != 'rendered']
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
