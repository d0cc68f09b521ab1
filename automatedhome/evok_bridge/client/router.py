#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from ..lib.constants import DEFAULT_TIMEOUT, SHUTDOWN_DRAIN_TIMEOUT
from ..lib.exceptions import FetchError
from .bridge.models import BrokerCommand, GatewayReading, ReadingSource
from .bridge.translators import BrokerToGatewayTranslator, GatewayToBrokerTranslator
from .downstream.base import DownstreamAdapter
from .downstream.evok.codec import EvokCodec
from .downstream.evok.rest_adapter import EvokRestAdapter
from .downstream.models import RawDownstreamMessage
from .sink_writer import SinkWriter

logger = logging.getLogger(__name__)


class Router:
    """
    Routes messages between the broker and the EVOK gateway

    Responsibilities:
      1) Broker -> gateway:
         - Receive RawDownstreamMessage from the MQTT adapter ("evok/+/+/set")
         - Build the command frame via BrokerToGatewayTranslator
         - Submit it to the gateway sink

      2) Gateway -> broker (push frames and poll snapshots):
         - Decode payload via EvokCodec into GatewayReading list
         - Translate into retained publications via GatewayToBrokerTranslator
         - Submit the whole batch to the broker sink

      3) Poll loop: fetch /rest/all every `interval` seconds in its own thread

    Notes:
      - Each sink has exactly one writer thread (SinkWriter), producers only
        enqueue fully translated batches, so writes never interleave
      - Router owns the adapters it is given; it never creates transports
    """

    def __init__(
        self,
        *,
        broker: DownstreamAdapter,
        gateway: DownstreamAdapter,
        snapshot: EvokRestAdapter,
        evok_codec: EvokCodec,
        to_broker: GatewayToBrokerTranslator,
        to_gateway: BrokerToGatewayTranslator,
        interval: float,
        submit_timeout: float = DEFAULT_TIMEOUT,
        drain_timeout: float = SHUTDOWN_DRAIN_TIMEOUT,
    ) -> None:
        self.broker = broker
        self.gateway = gateway
        self.snapshot = snapshot
        self.evok_codec = evok_codec
        self.to_broker = to_broker
        self.to_gateway = to_gateway
        self.interval = interval
        self.drain_timeout = drain_timeout

        self.broker_sink = SinkWriter("broker", broker.write, submit_timeout=submit_timeout)
        self.gateway_sink = SinkWriter("gateway", gateway.write, submit_timeout=submit_timeout)

        self._stop = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None

    # ---- lifecycle ----

    def start(self, *, poll: bool = True) -> None:
        """
        Start sinks, connect adapters, start the poll loop.

        Adapter connection errors propagate, the caller treats them as fatal.
        """
        self._stop.clear()
        self.broker_sink.start()
        self.gateway_sink.start()

        self.broker.start(self.on_broker_message)
        self.gateway.start(self.on_gateway_message)
        self.snapshot.start(self.on_snapshot)

        if poll:
            self._poll_thread = threading.Thread(target=self._poll_loop, name="evok-poll", daemon=True)
            self._poll_thread.start()

    def stop(self) -> None:
        """
        Graceful shutdown:
          - stop the poll loop
          - drain both sinks (bounded by drain_timeout)
          - close adapters
        """
        logger.info("Stopping router...")
        self._stop.set()
        if self._poll_thread is not None:
            self._poll_thread.join(timeout=self.drain_timeout)
            self._poll_thread = None

        self.broker_sink.stop(timeout=self.drain_timeout)
        self.gateway_sink.stop(timeout=self.drain_timeout)

        for adapter in (self.gateway, self.snapshot, self.broker):
            try:
                adapter.stop()
            except Exception:
                logger.exception("Failed to stop %s adapter", adapter.downstream_name)
        logger.info("Router stopped")

    # ---- broker -> gateway ----

    def on_broker_message(self, msg: RawDownstreamMessage) -> None:
        payload = msg.payload
        if payload is None:
            payload = b""
        elif isinstance(payload, str):
            payload = payload.encode("utf-8")

        write = self.to_gateway.translate(BrokerCommand(topic=msg.address, payload=bytes(payload)))
        if write is None:
            return
        self.gateway_sink.submit([write])

    # ---- gateway -> broker ----

    def on_gateway_message(self, msg: RawDownstreamMessage) -> None:
        try:
            readings = self.evok_codec.decode(msg.payload)
        except ValueError as e:
            logger.warning("%s", e)
            return
        self._publish(readings, ReadingSource.PUSH)

    def on_snapshot(self, msg: RawDownstreamMessage) -> None:
        try:
            readings = self.evok_codec.decode(msg.payload)
        except ValueError as e:
            # Undecodable snapshot counts as empty for this iteration
            logger.warning("%s", e)
            readings = []
        logger.debug("Got data from evok: %r", readings)
        self._publish(readings, ReadingSource.POLL)

    def _publish(self, readings: Iterable[GatewayReading], source: ReadingSource) -> None:
        writes = self.to_broker.translate(readings, source)
        self.broker_sink.submit(writes)

    # ---- poll loop ----

    def poll_once(self) -> bool:
        """Run one snapshot cycle. Returns False if the fetch failed."""
        try:
            self.snapshot.poll()
        except FetchError as e:
            logger.warning("%s; skipping this poll, retry in %ss", e, self.interval)
            return False
        return True

    def _poll_loop(self) -> None:
        logger.info("Starting poll loop, interval=%ss", self.interval)
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Poll iteration failed, retry in %ss", self.interval)
            self._stop.wait(self.interval)
        logger.info("Poll loop stopped")
