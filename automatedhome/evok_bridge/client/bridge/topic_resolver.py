#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from ...lib.constants import DEFAULT_TOPIC_TEMPLATE
from .mapping_table import MappingTable


def default_topic(device: str, circuit: str) -> str:
    """
    Topic used when no mapping exists for the point.

    Example:
        default_topic("relay", "1") -> "evok/relay/1/value"
    """
    return DEFAULT_TOPIC_TEMPLATE.format(device=device, circuit=circuit)


class TopicResolver:
    """Pure lookups over MappingTable. No side effects, safe from any thread."""

    def __init__(self, table: MappingTable) -> None:
        self._table = table

    def resolve_topic(self, device: str, circuit: str) -> str:
        entry = self._table.find_by_circuit(device, circuit)
        if entry is None:
            return default_topic(device, circuit)
        return entry.topic

    def resolve_offset(self, topic: str) -> float:
        # Keyed by the resolved topic, not by (device, circuit)
        entry = self._table.find_by_topic(topic)
        if entry is None:
            return 0.0
        return entry.offset
