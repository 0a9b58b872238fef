"""Centralized constants for the fhirindex utils package."""

from pathlib import Path

# ============================================================================
# OUTPUT DIRECTORIES
# ============================================================================

# Per-project state directory (config file, error log)
STATE_DIR = Path("./.fhirindex")

CONFIG_FILE = STATE_DIR / "config.json"
ERROR_LOG_FILE = STATE_DIR / "error.log"
