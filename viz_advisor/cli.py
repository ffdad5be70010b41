"""
Command-line interface for viz-advisor.

Provides commands for:
- Analyzing a CSV/JSON file and printing ranked chart suggestions
- Listing the suggestion rule catalog

File decoding is delegated to pandas; the engine itself only sees records.
"""

import asyncio
import logging
import sys
from pathlib import Path

import click
import pandas as pd

from viz_advisor.core.config import AnalysisSettings
from viz_advisor.core.exceptions import ConfigError, InputError
from viz_advisor.engine.orchestrator import AnalysisEngine
from viz_advisor.suggestions.rule_catalog import VARIADIC, RuleCatalog

logger = logging.getLogger(__name__)


def load_records(file_path: str, delimiter: str = None):
    """Decode a CSV or JSON file into a list of records."""
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        frame = pd.read_json(path)
    elif suffix == ".jsonl":
        frame = pd.read_json(path, lines=True)
    else:
        frame = pd.read_csv(path, sep=delimiter or ",")
    return frame.to_dict(orient="records")


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """
    viz-advisor - chart suggestions for tabular data.

    Profiles a dataset, detects patterns and ranks visualizations with
    the columns each chart should bind to.
    """
    pass


@cli.command()
@click.argument('file_path', type=click.Path(exists=True))
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True), help='YAML settings file')
@click.option('--top', '-n', type=int, default=None, help='Number of suggestions to show')
@click.option('--format', '-f', 'output_format', type=click.Choice(['text', 'json']), default='text',
              help='Output format')
@click.option('--delimiter', '-d', default=None, help='Column delimiter for CSV files')
@click.option('--timeout', type=float, default=None, help='Seconds before returning a partial result')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default='WARNING', help='Logging level')
def analyze(file_path, config_path, top, output_format, delimiter, timeout, log_level):
    """
    Analyze a data file and suggest visualizations.

    FILE_PATH: CSV, JSON or JSON Lines file

    Examples:

    \b
    # Ranked suggestions as text
    viz-advisor analyze data/sales.csv

    \b
    # Full result as JSON with custom thresholds
    viz-advisor analyze data/sales.csv -c settings.yaml -f json
    """
    logging.basicConfig(level=getattr(logging, log_level.upper()), format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = AnalysisSettings.from_yaml(config_path) if config_path else AnalysisSettings()
        if top is not None:
            settings = settings.merged({'max_total_suggestions': top})
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(2)

    try:
        records = load_records(file_path, delimiter)
        engine = AnalysisEngine(settings)
        result = asyncio.run(engine.analyze(records, timeout=timeout))
    except InputError as e:
        click.echo(f"Input error: {e.message}", err=True)
        sys.exit(1)
    except (ValueError, OSError) as e:
        click.echo(f"Could not read {file_path}: {e}", err=True)
        sys.exit(1)

    if output_format == 'json':
        click.echo(result.to_json())
        return

    meta = result.metadata
    sampled = f" (sampled from {meta.original_row_count:,})" if meta.sampled else ""
    click.echo(f"\n{Path(file_path).name}: {meta.row_count:,} rows{sampled}, {meta.column_count} columns")
    if meta.partial:
        click.echo("Analysis timed out; showing a partial result.")

    click.echo(f"\nSuggestions ({len(result.suggestions)}):")
    for rank, suggestion in enumerate(result.suggestions, start=1):
        bindings = ", ".join(f"{role}={column}" for role, column in suggestion.columns.items())
        click.echo(f"  {rank:2d}. [{suggestion.final_score:.2f}] {suggestion.title} ({suggestion.type.value}: {bindings})")

    if result.insights:
        click.echo("\nInsights:")
        for insight in result.insights:
            click.echo(f"  - {insight.description}")


@cli.command(name='rules')
def list_rules():
    """List the suggestion rules grouped by domain."""
    catalog = RuleCatalog.default()
    for domain in catalog.domains:
        click.echo(f"\n{domain.value}:")
        for rule in catalog.rules_for(domain):
            arity = "all numeric" if rule.arity == VARIADIC else f"{rule.arity} column(s)"
            click.echo(f"  {rule.kind.value:<10} base={rule.base_score:.2f}  {arity}")


if __name__ == '__main__':
    cli()
