#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import math
import re
from typing import Any

from ..base import DownstreamCodec

# JSON number grammar, what EVOK accepts as a command value
_NUMBER_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")

# Beyond this integral floats switch to exponent notation
_EXPONENT_THRESHOLD = 1e21


def format_value(value: float) -> str:
    """
    Shortest decimal representation of a float

    Integral values stay in plain digits up to 1e21 (JSON number style),
    so 1234567.0 publishes as "1234567" rather than the "%v" style
    "1.234567e+06".

    Examples:
        format_value(1.0)   -> "1"
        format_value(17.5)  -> "17.5"
        format_value(1e-05) -> "1e-05"
        format_value(1e21)  -> "1e+21"
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < _EXPONENT_THRESHOLD:
        return str(int(value))
    return repr(value)


class MqttCodec(DownstreamCodec):
    """
    Codec for broker payloads.

    Supported conversions:
      - decode: raw "set" payload (bytes) -> numeric literal (str)
      - encode: reading value (float) -> decimal payload (bytes)
    """

    @property
    def downstream_name(self) -> str:
        return "mqtt"

    def decode(self, raw: Any) -> str:
        if isinstance(raw, (bytes, bytearray)):
            try:
                s = bytes(raw).decode("utf-8").strip()
            except UnicodeDecodeError as e:
                raise ValueError(f"Payload is not valid UTF-8: {raw!r}") from e
        else:
            s = str(raw).strip()

        # Empty number literal is serialized as zero
        if s == "":
            return "0"
        if not _NUMBER_RE.fullmatch(s):
            raise ValueError(f"Invalid number literal: {s!r}")
        return s

    def encode(self, value: Any) -> bytes:
        return format_value(float(value)).encode("utf-8")
