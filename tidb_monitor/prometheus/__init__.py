"""
Prometheus and Grafana configuration for the TiDB monitor.
"""

from .dashboard import render_dashboard_provisioning
from .models import PrometheusConfig, RenderParameters, Scheme, TLSFallbackPolicy
from .patterns import DEFAULT_PATTERNS, Regexp, RenderPatterns
from .renderer import RenderError, build_prometheus_config, render_prometheus_config
from .settings import ConfigValidationError, load_parameters

__all__ = [
    "ConfigValidationError",
    "DEFAULT_PATTERNS",
    "PrometheusConfig",
    "Regexp",
    "RenderError",
    "RenderParameters",
    "RenderPatterns",
    "Scheme",
    "TLSFallbackPolicy",
    "build_prometheus_config",
    "load_parameters",
    "render_dashboard_provisioning",
    "render_prometheus_config",
]
