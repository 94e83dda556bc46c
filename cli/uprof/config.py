import difflib
import logging
import os

import yaml
from jsonschema import Draft202012Validator

logger = logging.getLogger(__name__)

DEFAULT_PATH = ".uprof.yml"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "min_percent": {"type": "number", "minimum": 0, "exclusiveMaximum": 100},
        "output": {"type": "string", "minLength": 1},
        "log_level": {"enum": LOG_LEVELS},
    },
    "additionalProperties": False,
}


def default_config() -> dict:
    return {"min_percent": 0, "output": "-", "log_level": "WARNING"}


def load_config(path: str = DEFAULT_PATH) -> dict:
    cfg = default_config()
    if not os.path.exists(path):
        return cfg
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        # fall back to defaults if YAML is malformed
        logger.warning("ignoring malformed config %s: %s", path, e)
        return cfg
    if isinstance(data, dict):
        cfg.update({k: v for k, v in data.items() if k in cfg})
    return cfg


def _unknown_key_messages(keys) -> list:
    valid_keys = list(SCHEMA["properties"])
    messages = []
    for key in sorted(keys, key=str):
        msg = f"unknown key '{key}'"
        suggestion = difflib.get_close_matches(str(key), valid_keys, n=1)
        if suggestion:
            msg += f" (did you mean '{suggestion[0]}'?)"
        messages.append(msg)
    return messages


def validate_config_dict(data: dict) -> list:
    """Return one readable message per problem in a decoded .uprof.yml."""
    validator = Draft202012Validator(SCHEMA)
    errors = []
    for err in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path]):
        if err.validator == "additionalProperties":
            errors += _unknown_key_messages(set(err.instance) - set(SCHEMA["properties"]))
            continue
        key = "/".join(str(p) for p in err.path) or "<root>"
        msg = f"{key}: {err.message}"
        if key == "log_level" and str(err.instance).upper() in LOG_LEVELS:
            msg += f" (did you mean '{str(err.instance).upper()}'?)"
        errors.append(msg)
    return errors


def log_level_of(cfg: dict) -> int:
    """Numeric logging level for a config, WARNING when the value is not usable."""
    level = logging.getLevelName(str(cfg.get("log_level", "WARNING")).upper())
    return level if isinstance(level, int) else logging.WARNING
