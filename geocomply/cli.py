"""GeoComply CLI — command-line interface for compliance geolocation data.

Usage::

    geocomply validate plots.geojson
    geocomply fix plots.geojson fixed.geojson
    geocomply export places.json -o export.zip --convert-small-to-points
    geocomply history --client-id acme
    geocomply --version
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager

import click
from dotenv import load_dotenv
from pydantic import ValidationError

from geocomply.core.exceptions import GeoComplyError


@contextmanager
def _export_service(config):
    """An ExportService over the configured export directory and history db."""
    from geocomply.archive.service import ExportService
    from geocomply.storage.artifacts import LocalArtifactStore
    from geocomply.storage.history import ExportHistory

    history = ExportHistory(config.storage.history_db_path)
    try:
        yield ExportService(
            LocalArtifactStore(config.storage.export_dir, config.storage.public_base_url),
            history,
            config,
        )
    finally:
        history.close()


@click.group(invoke_without_command=True)
@click.version_option(package_name="geocomply")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """GeoComply — geolocation validation and export for supply-chain due diligence."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("file_path", type=click.Path(exists=True))
@click.option("--json", "as_json", is_flag=True, help="Print the full outcome as JSON.")
def validate(file_path: str, as_json: bool) -> None:
    """Validate a geospatial file against the rule set."""
    from geocomply.api import outcome_json, outcome_summary
    from geocomply.api import validate as _validate

    if not as_json:
        click.echo(f"🔍 Validating {file_path}...")
    try:
        outcome = _validate(file_path)
    except (GeoComplyError, ValueError) as exc:
        click.secho(f"❌ Error: {exc}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(outcome_json(outcome))
    else:
        click.echo()
        click.echo(outcome_summary(outcome))
        for issue in outcome.errors:
            click.echo(f"  - {issue.feature_name or 'Unknown'}: {issue.message}")
    if not outcome.valid:
        sys.exit(1)


@cli.command(name="fix")
@click.argument("file_path", type=click.Path(exists=True))
@click.argument("output", type=click.Path())
def fix_cmd(file_path: str, output: str) -> None:
    """Close rings, round coordinates and save as GeoJSON."""
    from geocomply.api import fix as _fix
    from geocomply.api import outcome_summary

    click.echo(f"🔧 Fixing {file_path}...")
    try:
        outcome = _fix(file_path, output)
    except (GeoComplyError, ValueError) as exc:
        click.secho(f"❌ Error: {exc}", fg="red")
        sys.exit(1)
    click.echo()
    click.echo(outcome_summary(outcome))
    click.echo(f"\n💾 Saved to {output}")


@cli.command(name="export")
@click.argument("records_path", type=click.Path(exists=True))
@click.option("-o", "--output", type=click.Path(), help="Write the archive to this file.")
@click.option("--client-id", help="Upload and record the export for this client.")
@click.option("--supplier", "supplier_ids", multiple=True, help="Only include this supplier ID.")
@click.option("--commodity", help="Only include suppliers of this commodity.")
@click.option("--convert-small-to-points", is_flag=True, help="Export small plots as points.")
@click.option("--simplify-tolerance", type=float, help="Simplify polygons (degrees, max 0.001).")
@click.option("--audit-log", is_flag=True, help="Include audit_log.json in the archive.")
def export_cmd(
    records_path: str,
    output: str | None,
    client_id: str | None,
    supplier_ids: tuple[str, ...],
    commodity: str | None,
    convert_small_to_points: bool,
    simplify_tolerance: float | None,
    audit_log: bool,
) -> None:
    """Assemble a compliance archive from production-place records."""
    from geocomply.api import load_records
    from geocomply.core.config import load_config
    from geocomply.core.schemas import ExportRequest
    from geocomply.archive.assembler import ExportAssembler
    from geocomply.archive.service import filter_records

    if not output and not client_id:
        raise click.UsageError("Provide --output, --client-id, or both.")

    try:
        request = ExportRequest(
            supplier_ids=list(supplier_ids) or None,
            commodity=commodity.upper() if commodity else None,
            convert_small_to_points=convert_small_to_points,
            simplify_tolerance=simplify_tolerance,
            include_audit_log=audit_log,
        )
    except ValidationError as exc:
        raise click.BadParameter(str(exc)) from exc

    click.echo(f"📦 Exporting {records_path}...")
    config = load_config()
    try:
        records = load_records(records_path)
        options = request.to_options()
        artifact = ExportAssembler(config).assemble(filter_records(records, options), options)
        status = "VALID" if artifact.validation.valid else "INVALID"
        click.echo(
            f"   {artifact.summary.feature_count} places, "
            f"{artifact.summary.total_area_hectares:g} ha, status {status}"
        )
        for change in artifact.changes:
            click.echo(f"   • {change}")
        if output:
            with open(output, "wb") as fh:
                fh.write(artifact.archive)
            click.echo(f"\n💾 Saved to {output}")
        if client_id:
            with _export_service(config) as service:
                result = service.publish(client_id, artifact, options)
            click.echo(f"☁️  Uploaded: {result.download_url} ({result.file_size} bytes)")
    except (GeoComplyError, ValueError) as exc:
        click.secho(f"❌ Error: {exc}", fg="red")
        sys.exit(1)


@cli.command()
@click.option("--client-id", required=True, help="Client whose exports to list.")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=10, show_default=True)
def history(client_id: str, page: int, limit: int) -> None:
    """List previously generated exports."""
    from geocomply.core.config import load_config

    with _export_service(load_config()) as service:
        listing = service.list_exports(client_id, page=page, limit=limit)
    click.echo(json.dumps(listing, indent=2))


if __name__ == "__main__":
    cli()
