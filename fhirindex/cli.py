"""fhirindex CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click

from fhirindex import __version__


@click.group()
@click.version_option(version=__version__, prog_name="fhirindex")
@click.help_option("-h", "--help")
def cli():
    """fhirindex - FHIR search parameter indexing

    \b
    QUICK START:
      fhirindex index patient.json          # Index counts per resource
      fhirindex index bundle.json --json    # Full index entries as JSON
      fhirindex params Observation          # Search parameters for a type"""
    pass


from fhirindex.commands.index import index
from fhirindex.commands.params import params

cli.add_command(index)
cli.add_command(params)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
