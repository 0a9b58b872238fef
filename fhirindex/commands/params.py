"""List the search parameters registered for a resource type."""

from pathlib import Path

import click
from rich.table import Table

from fhirindex.config_runtime import load_runtime_config
from fhirindex.indexer import SearchParamType, load_schema_registry
from fhirindex.ui import console, print_warning
from fhirindex.utils.error_handler import handle_exceptions


@click.command("params")
@handle_exceptions
@click.argument("resource_type")
@click.option(
    "--schemas",
    "schema_dirs",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Extra directory of schema YAML files (repeatable)",
)
@click.option("--root", default=".", help="Project root holding .fhirindex/config.json")
def params(resource_type, schema_dirs, root):
    """Show the search parameters indexed for RESOURCE_TYPE.

    Composite and special parameters are listed but produce no entries.
    """
    config = load_runtime_config(root)
    extra_dirs = [Path(d) for d in config["paths"]["schemas_dirs"]] + list(schema_dirs)
    registry = load_schema_registry(extra_dirs)

    definitions = registry.search_parameters(resource_type)
    if not definitions:
        print_warning(f"No search parameters declared for {resource_type}")
        return

    table = Table(title=f"{resource_type} search parameters")
    table.add_column("Name", style="cmd")
    table.add_column("Type")
    table.add_column("Path", style="path", overflow="fold")

    for definition in definitions:
        category = definition.category.value
        if definition.category is SearchParamType.UNSUPPORTED:
            category = "[dim]unsupported[/dim]"
        table.add_row(definition.name, category, definition.path)

    console.print(table)
