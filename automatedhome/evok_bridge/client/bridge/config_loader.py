#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Tuple

import yaml

from ...lib.constants import DEFAULT_POLL_INTERVAL
from ...lib.exceptions import ConfigError
from .models import MappingEntry

logger = logging.getLogger(__name__)

_TOP_LEVEL_KEYS = frozenset(("interval", "mappings"))
_MAPPING_KEYS = frozenset(("device", "circuit", "topic", "offset"))


@dataclass(frozen=True)
class BridgeConfig:
    """
    Parsed and validated configuration.

    Example (output):
        BridgeConfig(
            interval=10,
            mappings=(MappingEntry(device="temp", circuit="1", topic="sensors/outdoor", offset=-2.5),),
        )
    """

    interval: int
    mappings: Tuple[MappingEntry, ...] = ()


def _check_keys(obj: Dict[str, Any], allowed: frozenset, where: str) -> None:
    unknown = sorted(str(k) for k in obj if k not in allowed)
    if unknown:
        raise ConfigError(f"Unknown field(s) in {where}: {', '.join(unknown)}")


def _required_str(obj: Dict[str, Any], key: str, where: str) -> str:
    value = obj.get(key)
    # YAML turns bare circuit numbers into ints, accept them as strings
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{where}.{key} must be a non-empty string, got {value!r}")
    return value.strip()


def _parse_mapping(item: Any, index: int) -> MappingEntry:
    where = f"mappings[{index}]"
    if not isinstance(item, dict):
        raise ConfigError(f"{where} must be a mapping, got {type(item).__name__}")
    _check_keys(item, _MAPPING_KEYS, where)

    offset = item.get("offset", 0.0)
    if offset is None:
        offset = 0.0
    if isinstance(offset, bool) or not isinstance(offset, (int, float)):
        raise ConfigError(f"{where}.offset must be a number, got {offset!r}")

    return MappingEntry(
        device=_required_str(item, "device", where),
        circuit=_required_str(item, "circuit", where),
        topic=_required_str(item, "topic", where),
        offset=float(offset),
    )


def parse_config(raw: Any) -> BridgeConfig:
    """
    Validate an already decoded YAML document.

    Input (fragment):
        {"interval": 10, "mappings": [{"device": "temp", "circuit": "1", "topic": "t", "offset": 0.5}]}

    Unknown fields are rejected at every level. Empty documents fall back to defaults.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root must be a mapping, got {type(raw).__name__}")
    _check_keys(raw, _TOP_LEVEL_KEYS, "configuration")

    interval = raw.get("interval", DEFAULT_POLL_INTERVAL)
    if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
        raise ConfigError(f"interval must be a positive integer (seconds), got {interval!r}")

    mappings = raw.get("mappings") or []
    if not isinstance(mappings, list):
        raise ConfigError(f"mappings must be a list, got {type(mappings).__name__}")

    return BridgeConfig(
        interval=interval,
        mappings=tuple(_parse_mapping(m, i) for i, m in enumerate(mappings)),
    )


def load_config(path: str) -> BridgeConfig:
    """
    Load YAML config from disk.

    Input:
      path: path to YAML file.

    Output:
      BridgeConfig, raises ConfigError on any read/decode/validation problem.

    Example:
      cfg = load_config("/config.yaml")
      cfg.interval, cfg.mappings
    """
    logger.info("Reading configuration from %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"File reading error: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    cfg = parse_config(raw)
    logger.debug("Loaded configuration: %r", cfg)
    return cfg
