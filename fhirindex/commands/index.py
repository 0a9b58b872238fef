"""Index FHIR resource files and report the extracted search index entries."""

import json
import sys
from pathlib import Path

import click
from rich.table import Table

from fhirindex.config_runtime import load_runtime_config
from fhirindex.indexer import Resource, ResourceIndexer, iter_bundle, load_schema_registry
from fhirindex.indexer.entities import CATEGORY_FIELDS
from fhirindex.indexer.exceptions import ResourceFormatError
from fhirindex.ui import console, print_success, print_warning
from fhirindex.utils.error_handler import handle_exceptions
from fhirindex.utils.exit_codes import ExitCodes
from fhirindex.utils.logging import logger


def _load_resources(files: tuple[Path, ...], max_file_size: int) -> list[Resource]:
    resources = []
    for path in files:
        size = path.stat().st_size
        if size > max_file_size:
            raise ResourceFormatError(
                f"{path} is {size} bytes, above the {max_file_size} byte limit"
            )
        expanded = iter_bundle(Resource.from_file(path))
        logger.debug(f"Loaded {len(expanded)} resource(s) from {path}")
        resources.extend(expanded)
    return resources


def _counts_table(results) -> Table:
    table = Table(title="Search Index Entries", show_lines=False)
    table.add_column("Resource", style="path")
    for field_name in CATEGORY_FIELDS.values():
        table.add_column(field_name.removesuffix("_indices"), justify="right")
    table.add_column("total", justify="right", style="bold")

    for indices in results:
        counts = indices.counts()
        label = f"{indices.resource_type}/{indices.resource_id}" if indices.resource_id else indices.resource_type
        table.add_row(
            label,
            *(str(counts[name]) for name in CATEGORY_FIELDS.values()),
            str(sum(counts.values())),
        )
    return table


@click.command("index")
@handle_exceptions
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--schemas",
    "schema_dirs",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Extra directory of schema YAML files (repeatable)",
)
@click.option("--workers", type=int, default=None, help="Parallel indexing threads")
@click.option("--json", "as_json", is_flag=True, help="Print index entries as JSON")
@click.option("--root", default=".", help="Project root holding .fhirindex/config.json")
def index(files, schema_dirs, workers, as_json, root):
    """Index FHIR JSON resources against their search parameters.

    Each FILE holds one resource or a Bundle; bundle entries are indexed
    individually. Any schema or path error aborts the run.

    \b
    EXAMPLES:
      fhirindex index patient.json
      fhirindex index bundle.json --json
      fhirindex index obs.json --schemas ./my-schemas --workers 8
    """
    config = load_runtime_config(root)
    extra_dirs = [Path(d) for d in config["paths"]["schemas_dirs"]] + list(schema_dirs)

    registry = load_schema_registry(extra_dirs)
    resources = _load_resources(files, config["limits"]["max_file_size"])
    if not resources:
        print_warning("No resources found in the given files")
        sys.exit(ExitCodes.NOTHING_INDEXED)

    indexer = ResourceIndexer(registry)
    results = indexer.index_all(resources, max_workers=workers or config["limits"]["max_workers"])

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
        return

    console.print(_counts_table(results))
    total = sum(sum(r.counts().values()) for r in results)
    print_success(f"Indexed {len(results)} resource(s), {total} entries")
