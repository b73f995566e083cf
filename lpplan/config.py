"""Loading of JSON data files for the planning models."""

import json
from pathlib import Path

from lpplan.errors import DataError, MissingDataError

DATA_DIR = Path(__file__).parent / "data"


def default_data_path(name):
    """Path of a bundled data file, e.g. ``default_data_path("workforce")``."""
    return DATA_DIR / f"{name}.json"


def load_config(config_path):
    """Load configuration from JSON file."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise DataError(f"Data file not found: {config_path}")
    with open(config_path, 'r') as f:
        try:
            config = json.load(f)
        except json.JSONDecodeError as exc:
            raise DataError(f"{config_path} is not valid JSON: {exc}") from exc
    if not isinstance(config, dict):
        raise DataError(f"{config_path} must hold a JSON object")
    return config


def require(config, *keys):
    """Return the values of ``keys``, failing on the first missing one."""
    missing = [key for key in keys if key not in config]
    if missing:
        raise MissingDataError(f"Data is missing required entries: {', '.join(missing)}")
    values = tuple(config[key] for key in keys)
    return values[0] if len(values) == 1 else values
