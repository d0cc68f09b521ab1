#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
EVOK <-> MQTT bridge

Publishes EVOK I/O states (WebSocket push + periodic /rest/all poll) as
retained MQTT messages and forwards "evok/<dev>/<circuit>/set" messages
to EVOK as command frames

Usage:
    evok-mqtt-bridge --broker tcp://127.0.0.1:1883 --config /config.yaml --evok 127.0.0.1:8080
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from websockets.exceptions import WebSocketException

from ..lib.constants import (
    DEFAULT_BROKER_URL,
    DEFAULT_CLIENT_ID,
    DEFAULT_CONFIG_PATH,
    DEFAULT_EVOK_ADDRESS,
    DEFAULT_TIMEOUT,
    EVOK_REST_ALL_PATH,
    EVOK_WS_PATH,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    SET_TOPIC_FILTER,
)
from ..lib.exceptions import ConfigError
from .bridge.config_loader import load_config
from .bridge.mapping_table import MappingTable
from .bridge.topic_resolver import TopicResolver
from .bridge.translators import BrokerToGatewayTranslator, GatewayToBrokerTranslator
from .downstream.evok.codec import EvokCodec
from .downstream.evok.rest_adapter import EvokRestAdapter, EvokRestConfig
from .downstream.evok.ws_adapter import EvokWsAdapter, EvokWsConfig
from .downstream.mqtt.adapter import MqttAdapter, MqttConnectionConfig
from .downstream.mqtt.codec import MqttCodec
from .router import Router

logger = logging.getLogger("Main")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bidirectional bridge between EVOK and an MQTT broker")
    parser.add_argument(
        "--broker",
        default=DEFAULT_BROKER_URL,
        help="The full url of the MQTT server to connect to ex: tcp://127.0.0.1:1883",
    )
    parser.add_argument("--clientid", default=DEFAULT_CLIENT_ID, help="A clientid for the connection")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help="Provide configuration file with MQTT topic mappings",
    )
    parser.add_argument(
        "--evok",
        default=DEFAULT_EVOK_ADDRESS,
        help="IP address and port of EVOK API: 127.0.0.1:8080",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Deadline in seconds for every network call (publish, send, fetch)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_router(args: argparse.Namespace, table: MappingTable, interval: int) -> Router:
    """Create transports, codecs and translators and hand them to the Router."""
    mqtt_codec = MqttCodec()
    evok_codec = EvokCodec()
    resolver = TopicResolver(table)

    broker = MqttAdapter(
        cfg=MqttConnectionConfig.from_url(
            args.broker,
            client_id=args.clientid,
            publish_timeout=args.timeout,
        ),
        subscriptions=[SET_TOPIC_FILTER],
    )
    gateway = EvokWsAdapter(
        cfg=EvokWsConfig(
            url=f"ws://{args.evok}{EVOK_WS_PATH}",
            open_timeout=args.timeout,
            close_timeout=args.timeout,
        )
    )
    snapshot = EvokRestAdapter(cfg=EvokRestConfig(url=f"http://{args.evok}{EVOK_REST_ALL_PATH}", timeout=args.timeout))

    return Router(
        broker=broker,
        gateway=gateway,
        snapshot=snapshot,
        evok_codec=evok_codec,
        to_broker=GatewayToBrokerTranslator(resolver=resolver, codec=mqtt_codec),
        to_gateway=BrokerToGatewayTranslator(mqtt_codec=mqtt_codec, evok_codec=evok_codec),
        interval=interval,
        submit_timeout=args.timeout,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )

    # Early register signal handlers for graceful shutdown
    stop_event = threading.Event()

    def _log_and_stop(signum, frame) -> None:
        logger.info("Received signal %s, shutting down", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _log_and_stop)
    signal.signal(signal.SIGTERM, _log_and_stop)

    try:
        cfg = load_config(args.config)
        table = MappingTable.from_config(cfg)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1
    logger.info("Loaded %d topic mapping(s), poll interval %ss", len(table), cfg.interval)

    try:
        router = build_router(args, table, cfg.interval)
    except ValueError as e:
        logger.error("Invalid arguments: %s", e)
        return 1

    # NOTE: Initialization order:
    #       1. Sinks first, so nothing received can be lost to a missing writer
    #       2. MQTT connect + subscribe "evok/+/+/set"
    #       3. EVOK WebSocket, push frames start flowing
    #       4. Poll loop
    #       Failure to reach the broker or EVOK at startup is fatal
    try:
        router.start()
    except (OSError, WebSocketException) as e:
        logger.error("Startup connection failed: %r", e)
        router.stop()
        return 1
    logger.info("Connected to %s as %s and listening", args.broker, args.clientid)

    # Idle until SIGINT/SIGTERM
    while not stop_event.wait(1.0):
        pass
    router.stop()
    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
