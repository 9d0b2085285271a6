#!/usr/bin/env python3
"""
Command-Line Interface for the TiDB monitor configuration generator.

This module provides the CLI entry point for rendering the Prometheus
configuration and the Grafana dashboard provisioning document.

Usage:
    # Render for one namespace to stdout
    python3 -m tidb_monitor render --namespace tidb --target-regex "basic.*"

    # Render with TLS and alerting into a file
    python3 -m tidb_monitor render -n tidb -n tidb-staging --tls \\
        --alertmanager-url alertmanager:9093 --output prometheus.yml

    # Render from a parameter file
    python3 -m tidb_monitor -c monitor.yaml render

    # Dashboard provisioning document
    python3 -m tidb_monitor dashboard --output dashboards.json
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .prometheus.dashboard import DASHBOARD_DEFINITIONS_PATH, render_dashboard_provisioning
from .prometheus.models import CLUSTER_JOB_NAME, RULE_FILES_GLOB, TIKV_FALLBACK_JOB_NAME
from .prometheus.patterns import DEFAULT_PATTERNS
from .prometheus.renderer import (
    CA_FILE_PATH,
    CERT_FILE_PATH,
    KEY_FILE_PATH,
    RenderError,
    render_prometheus_config,
)
from .prometheus.settings import ConfigValidationError, load_parameters

# Set up logging with rich handler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(rich_tracebacks=True, show_time=False)],
)
logger = logging.getLogger(__name__)
console = Console(stderr=True)


class CLIContext:
    """Context object for CLI commands."""

    def __init__(self):
        self.verbose = False
        self.config_path: Optional[Path] = None


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def _write_output(text: str, output: Optional[Path]):
    """Write a document to ``output``, or to stdout when no path is given."""
    if output is None:
        click.echo(text, nl=not text.endswith("\n"))
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"Written to [cyan]{output}[/cyan]")


@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output"
)
@click.option(
    "-c", "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to render parameter file"
)
@click.version_option(version=__version__, prog_name="tidb-monitor-config")
@pass_context
def cli(ctx: CLIContext, verbose: bool, config: Optional[Path]):
    """
    TiDB monitor configuration generator.

    Render the Prometheus scrape configuration and the Grafana dashboard
    provisioning document for a TiDB cluster on Kubernetes.
    """
    ctx.verbose = verbose
    ctx.config_path = config

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose mode enabled")


@cli.command()
@click.option(
    "--alertmanager-url",
    type=str,
    default=None,
    help="Alertmanager address (host:port); alerting is disabled when empty"
)
@click.option(
    "--namespace", "-n", "namespaces",
    multiple=True,
    help="Namespace to discover pods in (can be specified multiple times)"
)
@click.option(
    "--target-regex",
    type=str,
    default=None,
    help="Regex matched against the app.kubernetes.io/instance pod label"
)
@click.option(
    "--tls/--no-tls",
    "enable_tls",
    default=None,
    help="Scrape the cluster over TLS"
)
@click.option(
    "--output", "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file (stdout when omitted)"
)
@pass_context
def render(
    ctx: CLIContext,
    alertmanager_url: Optional[str],
    namespaces: tuple,
    target_regex: Optional[str],
    enable_tls: Optional[bool],
    output: Optional[Path],
):
    """
    Render the Prometheus configuration.

    Command-line options take precedence over the parameter file.

    Examples:

        # Single namespace
        python3 -m tidb_monitor render -n tidb --target-regex "basic.*"

        # TLS cluster with alerting
        python3 -m tidb_monitor render -n tidb --tls --alertmanager-url alertmanager:9093
    """
    try:
        params = load_parameters(
            config_path=ctx.config_path,
            alertmanager_url=alertmanager_url,
            namespaces=namespaces,
            target_regex=target_regex,
            enable_tls=enable_tls,
        )
        logger.debug(
            "Rendering for namespaces %s (tls=%s)",
            ", ".join(params.namespaces), params.enable_tls,
        )
        _write_output(render_prometheus_config(params), output)

    except ConfigValidationError as e:
        console.print(f"[bold red]Invalid parameters:[/bold red] {escape(str(e))}")
        for error in e.errors:
            console.print(f"  • {escape(error)}")
        sys.exit(1)
    except (RenderError, yaml.YAMLError, OSError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", style="red")
        if ctx.verbose:
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.option(
    "--output", "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file (stdout when omitted)"
)
@pass_context
def dashboard(ctx: CLIContext, output: Optional[Path]):
    """Write the Grafana dashboard provisioning document."""
    try:
        _write_output(render_dashboard_provisioning(), output)
    except OSError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", style="red")
        if ctx.verbose:
            console.print_exception()
        sys.exit(1)


@cli.command()
def info():
    """
    Display the fixed settings of the generated configuration.

    Show job names, certificate paths and relabel patterns.
    """
    console.print("\n[bold blue]TiDB Monitor Config[/bold blue]")
    console.print(f"Version: [cyan]{__version__}[/cyan]")

    table = Table(title="Fixed Settings", show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Cluster job", CLUSTER_JOB_NAME)
    table.add_row("TLS fallback job", TIKV_FALLBACK_JOB_NAME)
    table.add_row("Rule files", RULE_FILES_GLOB)
    table.add_row("CA file", CA_FILE_PATH)
    table.add_row("Client cert", CERT_FILE_PATH)
    table.add_row("Client key", KEY_FILE_PATH)
    table.add_row("Dashboards", DASHBOARD_DEFINITIONS_PATH)
    table.add_row("TLS fallback pods", escape(str(DEFAULT_PATTERNS.tikv)))
    table.add_row("Address rewrite", escape(str(DEFAULT_PATTERNS.port)))

    console.print(table)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
