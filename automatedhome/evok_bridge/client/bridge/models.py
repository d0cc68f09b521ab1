#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from ...lib.constants import EVOK_SET_COMMAND


class ReadingSource(Enum):
    # Unsolicited frame from the EVOK WebSocket
    PUSH = "push"

    # Periodic /rest/all snapshot
    POLL = "poll"


@dataclass(frozen=True)
class MappingEntry:
    """
    Configured override for one EVOK point.

    Input source: config["mappings"] items.

    Example (input YAML):
        mappings:
          - device: temp
            circuit: "28D1EFA5020000EB"
            topic: sensors/outdoor
            offset: -2.5

    Example (output object):
        MappingEntry(
            device="temp",
            circuit="28D1EFA5020000EB",
            topic="sensors/outdoor",
            offset=-2.5,
        )
    """

    device: str
    circuit: str
    topic: str
    offset: float = 0.0


@dataclass(frozen=True)
class GatewayReading:
    """
    One value reported by EVOK, either in a push frame or in a snapshot.

    Example:
        {"dev": "relay", "circuit": "1", "value": 1} ->
            GatewayReading(device="relay", circuit="1", value=1.0)
    """

    device: str
    circuit: str
    value: float


@dataclass(frozen=True)
class BrokerCommand:
    """
    Message received on the "evok/+/+/set" subscription.

    Example:
        BrokerCommand(topic="evok/relay/1/set", payload=b"1")
    """

    topic: str
    payload: bytes


@dataclass(frozen=True)
class GatewayCommand:
    """
    Command frame sent to EVOK over the WebSocket.

    `value` is kept as the numeric literal received from the broker,
    no offset is applied in this direction.
    """

    device: str
    circuit: str
    value: str
    command: str = EVOK_SET_COMMAND

    def to_wire(self) -> Dict[str, Any]:
        return {
            "command": self.command,
            "dev": self.device,
            "circuit": self.circuit,
            "value": self.value,
        }
