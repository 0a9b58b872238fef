"""Central UI handler for fhirindex.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every command file.
"""

import sys

from rich.console import Console
from rich.theme import Theme

FHIRINDEX_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "cmd": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

console = Console(
    theme=FHIRINDEX_THEME,
    force_terminal=sys.stdout.isatty()
)


def print_warning(msg: str) -> None:
    console.print(f"[warning]WARNING:[/warning] {msg}")


def print_success(msg: str) -> None:
    console.print(f"[success]OK:[/success] {msg}")
