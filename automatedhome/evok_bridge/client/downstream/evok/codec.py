#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import logging
import math
from typing import Any, List, Optional

from ..base import DownstreamCodec
from ...bridge.models import GatewayCommand, GatewayReading

logger = logging.getLogger(__name__)


def _to_float(value: Any) -> Optional[float]:
    # EVOK reports numbers either as JSON numbers or as numeric strings
    if isinstance(value, str):
        if "_" in value:
            return None
        value = value.strip()
    elif not isinstance(value, (bool, int, float)):
        return None
    try:
        result = float(value)
    except (OverflowError, ValueError):
        return None
    # NaN/Infinity are not JSON numbers
    if not math.isfinite(result):
        return None
    return result


class EvokCodec(DownstreamCodec):
    """
    Codec for EVOK JSON messages.

    decode(): push frame or /rest/all body -> list of GatewayReading

        '[{"dev": "relay", "circuit": "1", "value": 1}]'
            -> [GatewayReading(device="relay", circuit="1", value=1.0)]

      A single object (older EVOK push format) is decoded as a one-element
      batch. Objects without dev/circuit or with a non-numeric value are
      skipped; the rest of the batch is kept in order.
      Raises ValueError if the text is not JSON or not an array/object.

    encode(): GatewayCommand -> command frame text

        GatewayCommand(device="relay", circuit="1", value="1")
            -> '{"command": "set", "dev": "relay", "circuit": "1", "value": "1"}'
    """

    @property
    def downstream_name(self) -> str:
        return "evok"

    def decode(self, raw: Any) -> List[GatewayReading]:
        if isinstance(raw, (bytes, bytearray)):
            raw = bytes(raw).decode("utf-8", errors="replace")
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Failed to unmarshal JSON data from EVOK message: {raw!r}") from e

        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise ValueError(f"EVOK message must be a JSON array, got {type(data).__name__}")

        readings: List[GatewayReading] = []
        for item in data:
            if not isinstance(item, dict):
                logger.debug("Skipping non-object EVOK entry: %r", item)
                continue
            dev = item.get("dev")
            circuit = item.get("circuit")
            if dev is None or circuit is None:
                logger.debug("Skipping EVOK entry without dev/circuit: %r", item)
                continue
            value = _to_float(item.get("value"))
            if value is None:
                logger.debug("Skipping %s/%s: non-numeric value %r", dev, circuit, item.get("value"))
                continue
            readings.append(GatewayReading(device=str(dev), circuit=str(circuit), value=value))
        return readings

    def encode(self, value: GatewayCommand) -> str:
        return json.dumps(value.to_wire())
