#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from typing import AbstractSet, Iterable, List, Optional

from ...lib.constants import MQTT_QOS, MQTT_RETAIN, POLL_DEVICE_KINDS
from ..downstream.evok.codec import EvokCodec
from ..downstream.models import DownstreamWrite
from ..downstream.mqtt.codec import MqttCodec
from .models import BrokerCommand, GatewayCommand, GatewayReading, ReadingSource
from .topic_resolver import TopicResolver

logger = logging.getLogger(__name__)


class GatewayToBrokerTranslator:
    """
    Turns a batch of EVOK readings into retained broker publications

    For each kept reading:
      topic   = resolver.resolve_topic(device, circuit)
      offset  = resolver.resolve_offset(topic)
      payload = decimal(value + offset)

    Push batches are taken as-is; poll batches are filtered by device kind.
    Output order equals input order.
    """

    def __init__(
        self,
        *,
        resolver: TopicResolver,
        codec: MqttCodec,
        downstream_name: str = "mqtt",
        poll_kinds: AbstractSet[str] = POLL_DEVICE_KINDS,
    ) -> None:
        self._resolver = resolver
        self._codec = codec
        self._downstream_name = downstream_name
        self._poll_kinds = poll_kinds

    def translate(self, readings: Iterable[GatewayReading], source: ReadingSource) -> List[DownstreamWrite]:
        writes: List[DownstreamWrite] = []
        for reading in readings:
            if source is ReadingSource.POLL and reading.device not in self._poll_kinds:
                logger.info("Ignoring device %s", reading.device)
                continue

            topic = self._resolver.resolve_topic(reading.device, reading.circuit)
            offset = self._resolver.resolve_offset(topic)
            writes.append(
                DownstreamWrite(
                    downstream_name=self._downstream_name,
                    address=topic,
                    payload=self._codec.encode(reading.value + offset),
                    meta={"qos": MQTT_QOS, "retain": MQTT_RETAIN},
                )
            )
        return writes


class BrokerToGatewayTranslator:
    """
    Turns one "evok/<device>/<circuit>/set" message into one EVOK command frame

    Example:
        BrokerCommand(topic="evok/relay/1/set", payload=b"1")
          -> '{"command": "set", "dev": "relay", "circuit": "1", "value": "1"}'

    Commands that cannot be built (short topic, non-numeric payload) are
    logged and dropped, returning None.
    """

    def __init__(
        self,
        *,
        mqtt_codec: MqttCodec,
        evok_codec: EvokCodec,
        downstream_name: str = "evok_ws",
    ) -> None:
        self._mqtt_codec = mqtt_codec
        self._evok_codec = evok_codec
        self._downstream_name = downstream_name

    def build_command(self, cmd: BrokerCommand) -> Optional[GatewayCommand]:
        parts = cmd.topic.split("/")
        if len(parts) < 3:
            logger.warning("Ignoring message on MQTT topic '%s': expected prefix/device/circuit/set", cmd.topic)
            return None

        try:
            value = self._mqtt_codec.decode(cmd.payload)
        except ValueError as e:
            logger.warning("Wrong data received on MQTT topic '%s' with payload: %r (%s)", cmd.topic, cmd.payload, e)
            return None

        return GatewayCommand(device=parts[1], circuit=parts[2], value=value)

    def translate(self, cmd: BrokerCommand) -> Optional[DownstreamWrite]:
        logger.info("Received message on MQTT topic: '%s' with payload: %r", cmd.topic, cmd.payload)
        command = self.build_command(cmd)
        if command is None:
            return None
        return DownstreamWrite(
            downstream_name=self._downstream_name,
            address=f"{command.device}/{command.circuit}",
            payload=self._evok_codec.encode(command),
        )
