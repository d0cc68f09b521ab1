#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from automatedhome.evok_bridge.client.downstream.models import DownstreamWrite, RawDownstreamMessage
from automatedhome.evok_bridge.client.downstream.mqtt.adapter import MqttAdapter, MqttConnectionConfig
from automatedhome.evok_bridge.client.downstream.mqtt.codec import MqttCodec, format_value
from automatedhome.evok_bridge.lib.exceptions import DeliveryError


def _paho_client(*, rc: int = 0, published: bool = True) -> MagicMock:
    client = MagicMock()
    info = client.publish.return_value
    info.rc = rc
    info.is_published.return_value = published
    return client


@pytest.mark.parametrize(
    "value,expected",
    [
        (1.0, "1"),
        (0.0, "0"),
        (-3.0, "-3"),
        (17.5, "17.5"),
        (21.25, "21.25"),
        (0.1 + 0.2, "0.30000000000000004"),
        (1e-05, "1e-05"),
        (1234567.0, "1234567"),
        (1e17, "100000000000000000"),
        (1e21, "1e+21"),
        (float("nan"), "NaN"),
        (float("inf"), "+Inf"),
        (float("-inf"), "-Inf"),
    ],
)
def test_format_value(value: float, expected: str):
    assert format_value(value) == expected


@pytest.mark.parametrize(
    "payload,expected",
    [
        (b"1", "1"),
        (b" 0 ", "0"),
        (b"-2.5", "-2.5"),
        (b"1e3", "1e3"),
        (b"", "0"),
        ("42", "42"),
    ],
)
def test_codec_decode_number_literal(payload, expected: str):
    assert MqttCodec().decode(payload) == expected


@pytest.mark.parametrize(
    "payload",
    [
        b"on",
        b"1.",
        b"01",
        b"+1",
        b"0x10",
        b"\xff\xfe",
        b"1 2",
        # Non-ASCII digits are not part of the number grammar
        "1.٥".encode("utf-8"),
        "١".encode("utf-8"),
        b"NaN",
        b"Infinity",
    ],
)
def test_codec_decode_rejects_non_numbers(payload: bytes):
    with pytest.raises(ValueError):
        MqttCodec().decode(payload)


def test_codec_encode():
    codec = MqttCodec()
    assert codec.encode(20.0 - 2.5) == b"17.5"
    assert codec.encode(1) == b"1"


@pytest.mark.parametrize(
    "url,host,port",
    [
        ("tcp://127.0.0.1:1883", "127.0.0.1", 1883),
        ("tcp://broker.local", "broker.local", 1883),
        ("mqtt://10.0.0.2:11883", "10.0.0.2", 11883),
        ("192.168.1.5:1884", "192.168.1.5", 1884),
    ],
)
def test_connection_config_from_url(url: str, host: str, port: int):
    cfg = MqttConnectionConfig.from_url(url, client_id="evok")
    assert cfg.host == host
    assert cfg.port == port
    assert cfg.client_id == "evok"


def test_connection_config_rejects_unknown_scheme():
    with pytest.raises(ValueError, match="Unsupported broker url scheme"):
        MqttConnectionConfig.from_url("ws://127.0.0.1:9001")


def test_adapter_subscribe_and_emit_raw_message():
    paho_client = _paho_client()

    cfg = MqttConnectionConfig(host="localhost", port=1883)
    adapter = MqttAdapter(cfg=cfg, subscriptions=["evok/+/+/set"], client=paho_client)

    received = []

    def on_raw(msg: RawDownstreamMessage) -> None:
        received.append(msg)

    adapter.start(on_raw)

    paho_client.connect.assert_called_once_with("localhost", 1883, keepalive=cfg.keepalive)
    paho_client.subscribe.assert_any_call("evok/+/+/set", qos=0)
    paho_client.loop_start.assert_called_once()

    # Simulate inbound message from paho
    fake_msg = MagicMock()
    fake_msg.topic = "evok/relay/1/set"
    fake_msg.payload = b"1"
    fake_msg.qos = 0
    fake_msg.retain = False

    adapter._on_message(paho_client, None, fake_msg)

    assert len(received) == 1
    assert received[0].downstream_name == "mqtt"
    assert received[0].address == "evok/relay/1/set"
    assert received[0].payload == b"1"
    assert received[0].meta == {"qos": 0, "retain": False}


def test_adapter_resubscribes_on_connect():
    paho_client = _paho_client()
    adapter = MqttAdapter(cfg=MqttConnectionConfig(host="localhost"), subscriptions=["evok/+/+/set"], client=paho_client)

    adapter._on_connect(paho_client, None, {}, 0, None)
    paho_client.subscribe.assert_called_once_with("evok/+/+/set", qos=0)


def test_adapter_handler_errors_do_not_escape_paho_thread():
    paho_client = _paho_client()
    adapter = MqttAdapter(cfg=MqttConnectionConfig(host="localhost"), subscriptions=[], client=paho_client)

    def boom(msg: RawDownstreamMessage) -> None:
        raise RuntimeError("boom")

    adapter.start(boom)
    fake_msg = MagicMock(topic="evok/relay/1/set", payload=b"1", qos=0, retain=False)
    adapter._on_message(paho_client, None, fake_msg)


def test_adapter_write_publish_retained():
    paho_client = _paho_client()
    cfg = MqttConnectionConfig(host="localhost", port=1883, publish_timeout=1.5)
    adapter = MqttAdapter(cfg=cfg, subscriptions=[], client=paho_client)

    adapter.write(
        DownstreamWrite(
            downstream_name="mqtt",
            address="evok/relay/1/value",
            payload=b"1",
            meta={"qos": 0, "retain": True},
        )
    )
    paho_client.publish.assert_called_once_with("evok/relay/1/value", payload=b"1", qos=0, retain=True)
    paho_client.publish.return_value.wait_for_publish.assert_called_once_with(timeout=1.5)


def test_adapter_write_refused_raises_delivery_error():
    paho_client = _paho_client(rc=4)  # MQTT_ERR_NO_CONN
    adapter = MqttAdapter(cfg=MqttConnectionConfig(host="localhost"), subscriptions=[], client=paho_client)

    with pytest.raises(DeliveryError) as exc:
        adapter.write(DownstreamWrite(downstream_name="mqtt", address="evok/relay/1/value", payload="1"))
    assert exc.value.address == "evok/relay/1/value"
    paho_client.publish.return_value.wait_for_publish.assert_not_called()


def test_adapter_write_timeout_raises_delivery_error():
    paho_client = _paho_client(published=False)
    adapter = MqttAdapter(cfg=MqttConnectionConfig(host="localhost"), subscriptions=[], client=paho_client)

    with pytest.raises(DeliveryError, match="not confirmed"):
        adapter.write(DownstreamWrite(downstream_name="mqtt", address="evok/relay/1/value", payload=b"1"))


def test_adapter_write_rejects_foreign_downstream():
    adapter = MqttAdapter(cfg=MqttConnectionConfig(host="localhost"), subscriptions=[], client=_paho_client())
    with pytest.raises(ValueError, match="Downstream mismatch"):
        adapter.write(DownstreamWrite(downstream_name="evok_ws", address="x", payload=b"1"))
