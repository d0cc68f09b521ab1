#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from ...lib.exceptions import ConfigError
from .config_loader import BridgeConfig
from .models import MappingEntry


@dataclass(frozen=True)
class MappingTable:
    """
    Holds configured mappings and both lookup indexes.

    - circuit index:
        (device, circuit) -> MappingEntry, used to pick the publish topic

    - topic index:
        topic -> MappingEntry, used to pick the calibration offset

    Example usage:

      table = MappingTable.from_entries([
          MappingEntry(device="temp", circuit="1", topic="sensors/outdoor", offset=-2.5),
      ])
      table.find_by_circuit("temp", "1").topic     # "sensors/outdoor"
      table.find_by_topic("sensors/outdoor").offset  # -2.5

    Notes:
      Built once at startup and never mutated, so readers need no locking.
    """

    entries: Tuple[MappingEntry, ...]
    by_circuit: Dict[Tuple[str, str], MappingEntry]
    by_topic: Dict[str, MappingEntry]

    @classmethod
    def from_entries(cls, entries: Iterable[MappingEntry]) -> "MappingTable":
        """
        Build both indexes.

        Conflicts are rejected with ConfigError:
          - the same (device, circuit) pair listed twice
          - the same topic listed with different offsets
        The same topic with the same offset is allowed (several circuits
        feeding one topic).
        """
        entries = tuple(entries)
        by_circuit: Dict[Tuple[str, str], MappingEntry] = {}
        by_topic: Dict[str, MappingEntry] = {}

        for e in entries:
            key = (e.device, e.circuit)
            if key in by_circuit:
                raise ConfigError(f"Duplicate mapping for device={e.device!r} circuit={e.circuit!r}")
            by_circuit[key] = e

            prev = by_topic.get(e.topic)
            if prev is None:
                by_topic[e.topic] = e
            elif prev.offset != e.offset:
                raise ConfigError(
                    f"Conflicting offsets for topic {e.topic!r}: {prev.offset!r} "
                    f"({prev.device}/{prev.circuit}) vs {e.offset!r} ({e.device}/{e.circuit})"
                )

        return cls(entries=entries, by_circuit=by_circuit, by_topic=by_topic)

    @classmethod
    def from_config(cls, cfg: BridgeConfig) -> "MappingTable":
        return cls.from_entries(cfg.mappings)

    def find_by_circuit(self, device: str, circuit: str) -> Optional[MappingEntry]:
        return self.by_circuit.get((device, circuit))

    def find_by_topic(self, topic: str) -> Optional[MappingEntry]:
        return self.by_topic.get(topic)

    def __len__(self) -> int:
        return len(self.entries)
