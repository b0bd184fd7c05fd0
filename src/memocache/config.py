"""Configuration loader for memocache stores."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jsonschema import Draft7Validator

from .cache import DurableStore, ValueStore, VolatileStore

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "backend": {"type": "string", "enum": ["disk", "memory"]},
        "cache_dir": {"type": ["string", "null"]},
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        },
    },
    "additionalProperties": False,
}

_validator = Draft7Validator(CONFIG_SCHEMA)


def validate_config(data: Dict[str, Any]) -> None:
    errors = sorted(_validator.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        messages = ", ".join(error.message for error in errors)
        raise ValueError(f"memocache config validation failed: {messages}")


@dataclass(frozen=True)
class MemoConfig:
    backend: str = "disk"
    cache_dir: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoConfig":
        validate_config(data)
        cache_dir = data.get("cache_dir")
        return cls(
            backend=data.get("backend", "disk"),
            cache_dir=Path(cache_dir).expanduser() if cache_dir else None,
            log_level=data.get("log_level", "INFO"),
        )


ENV_MAP = {
    "backend": "MEMOCACHE_BACKEND",
    "cache_dir": "MEMOCACHE_CACHE_DIR",
    "log_level": "MEMOCACHE_LOG_LEVEL",
}


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        value: Any = os.environ[env_name]
        if key == "log_level":
            value = value.upper()
        merged[key] = value

    return merged


def load_config(config_path: str | Path | None = None) -> MemoConfig:
    data: Dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        data = load_yaml(path)

    data = merge_env_overrides(data)
    return MemoConfig.from_dict(data)


def make_store(config: MemoConfig) -> ValueStore:
    logging.getLogger("memocache").setLevel(config.log_level)
    if config.backend == "memory":
        return VolatileStore()
    return DurableStore(config.cache_dir)
