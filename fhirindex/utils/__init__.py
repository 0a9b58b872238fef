"""fhirindex utilities package."""

from .constants import CONFIG_FILE, ERROR_LOG_FILE, STATE_DIR
from .error_handler import handle_exceptions
from .exit_codes import ExitCodes

__all__ = [
    "CONFIG_FILE",
    "ERROR_LOG_FILE",
    "STATE_DIR",
    "handle_exceptions",
    "ExitCodes",
]
