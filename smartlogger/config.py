import json
import os
import logging
from typing import Dict, Any

from jsonschema import validate
from jsonschema.exceptions import ValidationError

from smartlogger.naming import DEFAULT_TIME_FORMAT

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'smartlogger.json'))

# --- Define Configuration Schema ---
CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "log_file_path": {
            "type": "string",
            "default": "",
            "description": "Target log file. Empty string names the file by date under base_dir/Logs."
        },
        "time_format": {
            "type": "string",
            "minLength": 1,
            "default": DEFAULT_TIME_FORMAT,
            "description": "strftime pattern for the timestamp at the start of each line."
        },
        "max_history": {
            "type": "integer",
            "minimum": 0,
            "default": 50,
            "description": "How many recent entries are remembered for duplicate checks. 0 disables suppression."
        },
        "stale_seconds": {
            "type": "number",
            "minimum": 0,
            "default": 1800,
            "description": "How long an entry suppresses its duplicates. 0 disables suppression."
        },
        "deferred_retries": {
            "type": "integer",
            "minimum": 0,
            "default": 50,
            "description": "Lock checks a deferred write makes before writing anyway."
        },
        "base_dir": {
            "type": ["string", "null"],
            "default": None,
            "description": "Root of the dated Logs tree. Null uses the running program's directory."
        },
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            "default": "INFO",
            "description": "Level for the library's own diagnostic logging."
        }
    },
    "additionalProperties": False
}


# --- Custom Exception ---
class ConfigError(Exception):
    """Custom exception for configuration loading errors."""
    pass


def _apply_defaults(config_data: Dict[str, Any], schema: Dict[str, Any]) -> Dict[str, Any]:
    """Applies default values from the schema to the config data."""
    for key, prop_schema in schema.get("properties", {}).items():
        if "default" in prop_schema and key not in config_data:
            config_data[key] = prop_schema["default"]
            logger.debug(f"Applied default value for config key '{key}': {config_data[key]}")
    return config_data


def default_config() -> Dict[str, Any]:
    """Returns a config dict made only of schema defaults."""
    return _apply_defaults({}, CONFIG_SCHEMA)


def validate_config(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """Applies defaults and validates a config dict in place.

    Raises:
        ConfigError: If the data does not match the schema.
    """
    if not isinstance(config_data, dict):
        raise ConfigError(f"Configuration must be a JSON object, got {type(config_data).__name__}")

    config_data = _apply_defaults(config_data, CONFIG_SCHEMA)
    try:
        validate(instance=config_data, schema=CONFIG_SCHEMA)
    except ValidationError as e:
        error_message = f"Configuration validation failed: {e.message} (path: {'/'.join(map(str, e.path))})"
        logger.error(error_message)
        raise ConfigError(error_message) from e
    return config_data


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Loads and validates configuration from a JSON file.

    Args:
        config_path: Path to the configuration file.

    Returns:
        A dictionary containing the validated configuration settings with defaults applied.

    Raises:
        ConfigError: If the file doesn't exist, is invalid JSON, or fails schema validation.
    """
    if not os.path.exists(config_path):
        logger.error(f"Configuration file not found: {config_path}")
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Error decoding JSON configuration file {config_path}: {e}")
        raise ConfigError(f"Error decoding JSON configuration file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error reading configuration file {config_path}: {e}") from e

    config_data = validate_config(config_data)
    logger.info(f"Configuration loaded and validated successfully from {config_path}")
    return config_data


def save_config(config_data: Dict[str, Any], config_path: str = DEFAULT_CONFIG_PATH):
    """Saves configuration data to a JSON file.

    Args:
        config_data: The configuration dictionary to save.
        config_path: Path to the configuration file.

    Raises:
        ConfigError: If there's an error writing the file or serializing data.
    """
    try:
        parent = os.path.dirname(config_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(config_data, f, indent=2, ensure_ascii=False)
        logger.info(f"Configuration saved successfully to {config_path}")
    except OSError as e:
        raise ConfigError(f"Error writing configuration file {config_path}: {e}") from e
    except TypeError as e:
        raise ConfigError(f"Error serializing configuration data to JSON: {e}") from e
