"""Render the metrics registry for scraping."""
from __future__ import annotations

import logging

from .base import Metric
from .registry import MetricsRegistry

logger = logging.getLogger(__name__)

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


class PrometheusExporter:
    """Generate Prometheus compatible text format output."""

    content_type = CONTENT_TYPE

    def __init__(self, registry: MetricsRegistry | None = None) -> None:
        self.registry = registry or MetricsRegistry()

    def build_payload(self) -> str:
        lines: list[str] = []
        for metric in self.registry.metrics():
            lines.extend(self._render(metric))
        return "\n".join(lines) + ("\n" if lines else "")

    def export(self) -> str:
        payload = self.build_payload()
        logger.debug("Rendered %s metric families", len(self.registry.metrics()))
        return payload

    def _render(self, metric: Metric) -> list[str]:
        lines = [f"# HELP {metric.name} {metric.description}", f"# TYPE {metric.name} {metric.prometheus_type}"]
        for label_values, values in sorted(metric.snapshot().items()):
            label_text = ""
            if label_values:
                pairs = [f'{name}="{_escape(value)}"' for name, value in zip(metric.label_names, label_values)]
                label_text = "{" + ",".join(pairs) + "}"
            if "value" in values:
                lines.append(f"{metric.name}{label_text} {_format_number(values['value'])}")
            else:
                lines.append(f"{metric.name}_count{label_text} {_format_number(values['count'])}")
                lines.append(f"{metric.name}_sum{label_text} {_format_number(values['sum'])}")
        return lines
