#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

"""
Translator tests.

We check 2 directions:

1) Gateway -> broker:
   - readings resolve to mapped or default topics
   - offsets are added by resolved topic
   - poll batches are filtered by device kind, push batches are not
   - output keeps input order

2) Broker -> gateway:
   - "evok/<dev>/<circuit>/set" + numeric payload -> command frame
   - bad topics/payloads are dropped
"""

import json
import logging

import pytest

from automatedhome.evok_bridge.client.bridge.mapping_table import MappingTable
from automatedhome.evok_bridge.client.bridge.models import BrokerCommand, GatewayReading, MappingEntry, ReadingSource
from automatedhome.evok_bridge.client.bridge.topic_resolver import TopicResolver
from automatedhome.evok_bridge.client.bridge.translators import BrokerToGatewayTranslator, GatewayToBrokerTranslator
from automatedhome.evok_bridge.client.downstream.evok.codec import EvokCodec
from automatedhome.evok_bridge.client.downstream.models import DownstreamWrite
from automatedhome.evok_bridge.client.downstream.mqtt.codec import MqttCodec


def _to_broker(*entries: MappingEntry) -> GatewayToBrokerTranslator:
    resolver = TopicResolver(MappingTable.from_entries(entries))
    return GatewayToBrokerTranslator(resolver=resolver, codec=MqttCodec())


def _to_gateway() -> BrokerToGatewayTranslator:
    return BrokerToGatewayTranslator(mqtt_codec=MqttCodec(), evok_codec=EvokCodec())


def test_unmapped_reading_goes_to_default_topic():
    writes = _to_broker().translate(
        [GatewayReading(device="relay", circuit="1", value=1.0)], ReadingSource.PUSH
    )
    assert writes == [
        DownstreamWrite(
            downstream_name="mqtt",
            address="evok/relay/1/value",
            payload=b"1",
            meta={"qos": 0, "retain": True},
        )
    ]


def test_mapped_reading_gets_topic_and_offset():
    translator = _to_broker(MappingEntry(device="temp", circuit="1", topic="sensors/outdoor", offset=-2.5))
    writes = translator.translate([GatewayReading(device="temp", circuit="1", value=20.0)], ReadingSource.POLL)

    assert len(writes) == 1
    assert writes[0].address == "sensors/outdoor"
    assert writes[0].payload == b"17.5"
    assert writes[0].meta["retain"] is True


def test_offset_applies_to_every_circuit_sharing_the_topic():
    translator = _to_broker(
        MappingEntry(device="ai", circuit="1", topic="tank", offset=1.0),
        MappingEntry(device="ai", circuit="2", topic="tank", offset=1.0),
    )
    writes = translator.translate(
        [GatewayReading("ai", "1", 2.0), GatewayReading("ai", "2", 3.0)], ReadingSource.PUSH
    )
    assert [(w.address, w.payload) for w in writes] == [("tank", b"3"), ("tank", b"4")]


def test_poll_filters_unknown_kinds(caplog):
    translator = _to_broker()
    readings = [
        GatewayReading("temp", "1", 21.0),
        GatewayReading("unknown_kind", "1", 5.0),
        GatewayReading("relay", "1", 1.0),
        GatewayReading("ai", "1", 3.3),
        GatewayReading("wd", "1", 0.0),
        GatewayReading("input", "1", 0.0),
        GatewayReading("ao", "1", 7.5),
    ]
    with caplog.at_level(logging.INFO):
        writes = translator.translate(readings, ReadingSource.POLL)

    assert [w.address for w in writes] == [
        "evok/temp/1/value",
        "evok/relay/1/value",
        "evok/ai/1/value",
        "evok/input/1/value",
        "evok/ao/1/value",
    ]
    assert "Ignoring device unknown_kind" in caplog.text
    assert "Ignoring device wd" in caplog.text


def test_push_accepts_every_kind():
    writes = _to_broker().translate(
        [GatewayReading("unknown_kind", "1", 5.0), GatewayReading("led", "2", 1.0)], ReadingSource.PUSH
    )
    assert [w.address for w in writes] == ["evok/unknown_kind/1/value", "evok/led/2/value"]


def test_translate_preserves_input_order():
    readings = [GatewayReading("relay", str(i), float(i % 2)) for i in range(50)]
    writes = _to_broker().translate(readings, ReadingSource.PUSH)
    assert [w.address for w in writes] == [f"evok/relay/{i}/value" for i in range(50)]


def test_broker_set_becomes_command_frame():
    write = _to_gateway().translate(BrokerCommand(topic="evok/relay/1/set", payload=b"1"))

    assert write is not None
    assert write.downstream_name == "evok_ws"
    assert json.loads(write.payload) == {"command": "set", "dev": "relay", "circuit": "1", "value": "1"}


def test_broker_set_keeps_value_without_offset():
    # Offsets only correct readings, commanded setpoints pass unchanged
    write = _to_gateway().translate(BrokerCommand(topic="evok/ao/1/set", payload=b"2.5"))
    assert json.loads(write.payload)["value"] == "2.5"


def test_broker_set_empty_payload_is_zero():
    command = _to_gateway().build_command(BrokerCommand(topic="evok/relay/3/set", payload=b""))
    assert command.value == "0"
    assert (command.device, command.circuit, command.command) == ("relay", "3", "set")


@pytest.mark.parametrize(
    "topic,payload",
    [
        ("evok/relay/1/set", b"on"),
        ("evok/relay/1/set", b"{\"value\": 1}"),
        ("evok/relay", b"1"),
        ("evok", b"1"),
    ],
)
def test_broker_bad_message_is_dropped(caplog, topic: str, payload: bytes):
    with caplog.at_level(logging.WARNING):
        write = _to_gateway().translate(BrokerCommand(topic=topic, payload=payload))
    assert write is None
    assert len([r for r in caplog.records if r.levelno >= logging.WARNING]) == 1
