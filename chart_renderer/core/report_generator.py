#!/usr/bin/env python3
"""
Report Generator - Summaries of rendered charts as JSON and plain text
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Any, Optional

from .base_component import BaseComponent
from .constants import CHART_SUMMARY_FILE, TEXT_REPORT_FILE
from .errors import ConfigurationError


class ReportGenerator(BaseComponent):
    """Handles chart summaries and the render report."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        output_directory: Optional[str] = None,
        context=None,
        config_override=None,
    ):
        super().__init__(config_file, output_directory, context=context, config_override=config_override)

    def describe_chart(self, name: str, chart, output_file: Optional[Path] = None) -> Dict[str, Any]:
        """Summarize a rendered chart: request, layout and per-panel record counts."""
        summary = {
            'name': name,
            'status': 'rendered',
            'dataset': chart.dataset_name,
            'geometry': chart.geometry.value,
            'mapping': {channel.value: field for channel, field in chart.mapping.channels().items()},
            'scales': {channel.value: transform.value for channel, transform in chart.scales.items()},
            'layout': {'rows': chart.nrows, 'cols': chart.ncols},
            'panel_count': chart.panel_count,
            'record_count': chart.record_count,
            'panels': [
                {
                    'key': [str(level) for level in panel.key],
                    'records': panel.record_count,
                }
                for panel in chart.panels
            ],
        }
        if chart.facet is not None:
            summary['facet'] = {
                'kind': chart.facet.kind.value,
                'fields': chart.facet.referenced_fields(),
            }
        if output_file is not None:
            summary['output_file'] = str(output_file)
        return summary

    def describe_failure(self, name: str, error: Exception) -> Dict[str, Any]:
        """Summarize a chart that could not be rendered."""
        return {
            'name': name,
            'status': 'failed',
            'error_type': type(error).__name__,
            'error': str(error),
        }

    def _require_output_dir(self) -> Path:
        if self.output_dir is None:
            raise ConfigurationError("No output directory configured for reports")
        return self.output_dir

    def save_summary_json(self, summaries: List[Dict[str, Any]], datasets: Optional[Dict[str, Any]] = None) -> Path:
        """Save chart summaries (and optional dataset summaries) to a JSON file."""
        output_dir = self._require_output_dir()
        payload = {
            'project': self.get_project_name(),
            'render_date': datetime.now().isoformat(),
            'charts': summaries,
        }
        if datasets:
            payload['datasets'] = datasets

        summary_file = output_dir / CHART_SUMMARY_FILE
        with open(summary_file, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, default=str)
        self.logger.info(f"Chart summary saved to: {summary_file}")
        return summary_file

    def generate_text_report(self, summaries: List[Dict[str, Any]]) -> Path:
        """Generate a plain text report listing every chart and its panels."""
        output_dir = self._require_output_dir()
        rendered = [s for s in summaries if s['status'] == 'rendered']
        failed = [s for s in summaries if s['status'] != 'rendered']

        report_lines = [
            "Chart Render Report",
            "=" * 60,
            f"Project: {self.get_project_name()}",
            f"Render Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"Charts: {len(rendered)} rendered, {len(failed)} failed",
            "",
        ]

        if rendered:
            report_lines.append("RENDERED CHARTS:")
            for summary in rendered:
                mapping = ", ".join(f"{channel}={field}" for channel, field in summary['mapping'].items())
                report_lines.append(f"  {summary['name']} ({summary['geometry']} of {summary['dataset']})")
                report_lines.append(f"    Mapping: {mapping}")
                report_lines.append(
                    f"    Panels: {summary['panel_count']} "
                    f"({summary['layout']['rows']} x {summary['layout']['cols']}), "
                    f"records: {summary['record_count']:,}"
                )
                if 'output_file' in summary:
                    report_lines.append(f"    Output: {summary['output_file']}")
            report_lines.append("")

        if failed:
            report_lines.append("FAILED CHARTS:")
            for summary in failed:
                report_lines.append(f"  {summary['name']}: {summary['error_type']}: {summary['error']}")
            report_lines.append("")

        report_file = output_dir / TEXT_REPORT_FILE
        with open(report_file, 'w', encoding='utf-8') as f:
            f.write("\n".join(report_lines))
        self.logger.info(f"Report saved to: {report_file}")
        return report_file
