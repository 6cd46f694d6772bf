"""
promjsonl entry point.

Usage:
    promjsonl --metrics localhost:2000 --metricsfile /var/log/metrics.jsonl
    promjsonl --metrics localhost:2000 preview     One-shot table of what would be written
"""

from __future__ import annotations

import logging
import signal
import threading

import click

from promjsonl import __version__
from promjsonl.collector.http_collector import HTTPCollector
from promjsonl.config import LOG_LEVELS, ExporterConfig, parse_filter_patterns
from promjsonl.errors import ConfigError, ExporterError
from promjsonl.exporter import JSONLExporter
from promjsonl.storage.jsonl_writer import JSONLWriter


log = logging.getLogger("promjsonl")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(level: str):
    logging.basicConfig(
        level=_LEVELS.get(level.lower(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def _install_signal_handlers(stop: threading.Event):
    def handle(signum, frame):
        log.info("Received shutdown signal: %s", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="promjsonl")
@click.option("--metrics", envvar="METRICS_ENDPOINT", default=None,
              help="Metrics endpoint address (e.g. localhost:2000 or http://localhost:2000)")
@click.option("--metricsfile", envvar="METRICS_FILE", default=None,
              help="Path to the JSONL file where metrics will be saved")
@click.option("--metricsinterval", envvar="METRICS_INTERVAL", default="60s", show_default=True,
              help="How frequently to export metrics (e.g. 30s, 1m30s)")
@click.option("--metricsfilter", envvar="METRICS_FILTER", default=None,
              help="Comma-separated metric name patterns to export. Supports wildcards (*). "
                   "If not set, all metrics are exported.")
@click.option("--metricscompress", envvar="METRICS_COMPRESS", is_flag=True, default=False,
              help="Change-only mode: only write a metric when its value changes")
@click.option("--log-level", envvar="LOG_LEVEL", default="info", show_default=True,
              type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Log level")
@click.option("--cf-access-client-id", envvar="CF_ACCESS_CLIENT_ID", default=None,
              help="Cloudflare Access service token Client ID")
@click.option("--cf-access-client-secret", envvar="CF_ACCESS_CLIENT_SECRET", default=None,
              help="Cloudflare Access service token Client Secret")
@click.pass_context
def cli(ctx, metrics: str, metricsfile: str, metricsinterval: str, metricsfilter: str,
        metricscompress: bool, log_level: str, cf_access_client_id: str,
        cf_access_client_secret: str):
    """Export Prometheus metrics to a JSON Lines file."""
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["metrics"] = metrics
    ctx.obj["metricsfilter"] = metricsfilter
    ctx.obj["client_id"] = cf_access_client_id
    ctx.obj["client_secret"] = cf_access_client_secret

    if ctx.invoked_subcommand is not None:
        return

    if not metrics or not metricsfile:
        click.echo("Please specify --metrics <endpoint> and --metricsfile <path>", err=True)
        raise SystemExit(1)

    try:
        config = ExporterConfig.from_options(
            metrics=metrics,
            metricsfile=metricsfile,
            metricsinterval=metricsinterval,
            metricsfilter=metricsfilter,
            metricscompress=metricscompress,
            client_id=cf_access_client_id,
            client_secret=cf_access_client_secret,
            log_level=log_level,
        )
        writer = JSONLWriter(config.metrics_file)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    run_exporter(config, writer)


def run_exporter(config: ExporterConfig, writer: JSONLWriter):
    log.info("Starting promjsonl %s", __version__)

    collector = HTTPCollector(
        config.endpoint,
        client_id=config.client_id,
        client_secret=config.client_secret,
    )
    exporter = JSONLExporter(
        collector,
        writer,
        interval_seconds=config.interval_seconds,
        filter_patterns=config.filter_patterns,
        compress=config.compress,
    )

    log.info(
        "JSONL metrics export started: endpoint=%s, file=%s, interval=%.1fs, compress=%s, filters=%s",
        config.endpoint, config.metrics_file, config.interval_seconds,
        config.compress, ",".join(config.filter_patterns) or "<all>",
    )

    stop = threading.Event()
    _install_signal_handlers(stop)

    try:
        exporter.run(stop)
    finally:
        collector.close()

    log.info("Shutdown complete")


@cli.command()
@click.pass_context
def preview(ctx):
    """Scrape once and print the flattened samples without writing them."""
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table
    from promjsonl.collector.prometheus_parser import parse_prometheus_text
    from promjsonl.engine.flattener import Flattener
    from promjsonl.metrics import format_timestamp

    metrics = ctx.obj["metrics"]
    if not metrics:
        click.echo("Please specify --metrics <endpoint>", err=True)
        raise SystemExit(1)

    collector = HTTPCollector(
        metrics,
        client_id=ctx.obj["client_id"],
        client_secret=ctx.obj["client_secret"],
    )
    try:
        families = parse_prometheus_text(collector.fetch())
    except ExporterError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    finally:
        collector.close()

    flattener = Flattener(parse_filter_patterns(ctx.obj["metricsfilter"]))
    samples = list(flattener.flatten_all(families, format_timestamp()))

    console = Console()
    table = Table(show_header=True, header_style="bold", title=collector.name())
    table.add_column("Name", style="cyan")
    table.add_column("Type", width=10)
    table.add_column("Labels")
    table.add_column("Value", justify="right")

    for s in samples:
        labels = ", ".join(f"{k}={v}" for k, v in sorted(s.labels.items()))
        table.add_row(s.name, s.type, f"[dim]{escape(labels)}[/dim]", f"{s.value:g}")

    console.print(table)
    console.print(f"\n[bold]{len(samples)}[/bold] samples from {len(families)} families\n")


if __name__ == "__main__":
    cli()
