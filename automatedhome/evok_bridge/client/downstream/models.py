#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class RawDownstreamMessage:
    """
    Raw message produced by a downstream adapter

    This object is the adapter output BEFORE any codec conversion

    NOTE:
      Adapters do NOT assume anything about payload format
      Decoding happens in the codec the router picks for that adapter

    Fields:
      - downstream_name: downstream id (e.g. "mqtt", "evok_ws", "evok_rest")
      - address: transport-level address (MQTT topic, WebSocket or REST url)
      - payload: raw payload (bytes for MQTT, str for EVOK frames/snapshots)
      - meta: optional metadata (e.g. qos/retain for MQTT)
    """

    downstream_name: str
    address: str
    payload: Any
    meta: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class DownstreamWrite:
    """
    Request to write an already encoded payload to a downstream address

    Produced by translators, consumed by the sink writer that owns the adapter
    """

    downstream_name: str
    address: str
    payload: Any
    meta: Optional[Mapping[str, Any]] = None
