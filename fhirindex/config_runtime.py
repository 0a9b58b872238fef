"""Runtime configuration for fhirindex - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from fhirindex.utils.constants import CONFIG_FILE
from fhirindex.utils.logging import logger

DEFAULTS = {
    "paths": {
        "schemas_dirs": [],
    },
    "limits": {
        "max_workers": 4,
        "max_file_size": 16 * 1024 * 1024,
    },
}


def load_runtime_config(root: str = ".") -> dict[str, Any]:
    """
    Load runtime configuration from .fhirindex/config.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (FHIRINDEX_* prefixed)
    2. .fhirindex/config.json file
    3. Built-in defaults

    Args:
        root: Root directory to look for config file

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / CONFIG_FILE
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in cfg:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            if key not in cfg[section]:
                                continue
                            default_value = cfg[section][key]
                            # bool is an int subclass
                            if isinstance(value, bool) or not isinstance(value, type(default_value)):
                                continue
                            cfg[section][key] = value
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"FHIRINDEX_{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    default_value = cfg[section][key]
                    if isinstance(default_value, int):
                        cfg[section][key] = int(value)
                    elif isinstance(default_value, list):
                        cfg[section][key] = [v.strip() for v in value.split(",") if v.strip()]
                    else:
                        cfg[section][key] = value
                except ValueError as e:
                    logger.warning(
                        f"Invalid value for environment variable {env_var}: '{value}' - {e}"
                    )
                    logger.info(f"Using default value: {cfg[section][key]}")

    return cfg
