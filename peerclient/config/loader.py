"""YAML config loader, federation file loader and runtime get/set."""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from peerclient.config.defaults import DEFAULT_FEDERATION
from peerclient.config.schema import ClientConfig, CoordinatorConfig
from peerclient.errors import ConfigError

logger = logging.getLogger(__name__)


def load_config(path: str | Path, missing_ok: bool = False) -> ClientConfig:
    """Load and validate config from a YAML file.

    If no federation is specified in the YAML, injects DEFAULT_FEDERATION.
    With missing_ok, a nonexistent file yields the defaults.
    """
    path = Path(path)
    if not path.exists():
        if not missing_ok:
            raise ConfigError(f"Config file not found: {path}")
        logger.info("No config at %s, using defaults", path)
        raw: dict = {}
    else:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}

    if "federation" not in raw or not raw["federation"]:
        raw["federation"] = [c.model_dump() for c in DEFAULT_FEDERATION]

    return ClientConfig(**raw)


def load_federation(path: str | Path) -> list[CoordinatorConfig]:
    """Load a federation JSON file (a list of coordinator entries)."""
    path = Path(path)
    try:
        with open(path) as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read federation file {path}: {e}") from e

    if isinstance(raw, dict):
        # Also accept the {alias: entry} mapping form
        raw = list(raw.values())
    try:
        return [CoordinatorConfig.model_validate(entry) for entry in raw]
    except ValidationError as e:
        raise ConfigError(f"Invalid federation file {path}: {e}") from e


def config_hash(config: ClientConfig) -> str:
    """Compute a deterministic SHA256 hash of the config."""
    data = config.model_dump_json(indent=None)
    return hashlib.sha256(data.encode()).hexdigest()[:16]


def get_config_value(config: ClientConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'polling.default_delay_ms'."""
    parts = dotted_key.split(".")
    obj: Any = config
    for part in parts:
        if isinstance(obj, list):
            obj = obj[int(part)]
        elif hasattr(obj, part):
            obj = getattr(obj, part)
        elif isinstance(obj, dict):
            obj = obj[part]
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj


def set_config_value(config: ClientConfig, dotted_key: str, value: Any) -> ClientConfig:
    """Set a config value by dotted key path and re-validate.

    Returns a new ClientConfig instance.
    """
    data = json.loads(config.model_dump_json())
    parts = dotted_key.split(".")
    target = data
    for part in parts[:-1]:
        target = target[int(part)] if isinstance(target, list) else target[part]
    old_value = target.get(parts[-1])
    if isinstance(old_value, bool) and isinstance(value, str):
        value = value.strip().lower() in ("1", "true", "yes", "on")
    elif isinstance(old_value, int) and isinstance(value, str):
        value = int(value)
    elif isinstance(old_value, float) and isinstance(value, str):
        value = float(value)
    target[parts[-1]] = value
    return ClientConfig(**data)
