#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect as ws_connect

from ....lib.constants import DEFAULT_TIMEOUT, RECONNECT_DELAY_INITIAL, RECONNECT_DELAY_MAX
from ....lib.exceptions import DeliveryError
from ..base import DownstreamAdapter, RawMessageHandler
from ..models import DownstreamWrite, RawDownstreamMessage


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvokWsConfig:
    url: str
    open_timeout: float = DEFAULT_TIMEOUT
    close_timeout: float = DEFAULT_TIMEOUT
    reconnect_delay: float = RECONNECT_DELAY_INITIAL
    reconnect_delay_max: float = RECONNECT_DELAY_MAX


class EvokWsAdapter(DownstreamAdapter):
    """
    EVOK WebSocket adapter using the websockets sync client

    - start() opens the connection (errors propagate, startup is fatal)
      and runs a reader thread that emits every text frame to the handler
    - after a disconnect the reader reconnects with exponential backoff
    - write() sends one text frame, raising DeliveryError while disconnected

    Notes:
      - In tests we inject a fake `connect` callable
    """

    def __init__(self, *, cfg: EvokWsConfig, connect: Optional[Callable[..., Any]] = None) -> None:
        self._cfg = cfg
        self._connect = connect or ws_connect
        self._conn: Optional[Any] = None
        self._handler: Optional[RawMessageHandler] = None
        self._stop = threading.Event()
        self._reader: Optional[threading.Thread] = None

    @property
    def downstream_name(self) -> str:
        return "evok_ws"

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def start(self, handler: RawMessageHandler) -> None:
        self._handler = handler
        self._stop.clear()
        logger.info("Connecting to EVOK WebSocket %s", self._cfg.url)
        self._conn = self._open()
        logger.info("Connected to EVOK on %s", self._cfg.url)

        self._reader = threading.Thread(target=self._run, name="evok-ws-reader", daemon=True)
        self._reader.start()

    def stop(self) -> None:
        logger.info("Stopping EVOK WebSocket adapter")
        self._stop.set()
        conn = self._conn
        if conn is not None:
            try:
                conn.close()
            except Exception:
                logger.exception("EVOK WebSocket close failed")
        if self._reader is not None:
            self._reader.join(timeout=self._cfg.close_timeout)
            self._reader = None
        self._conn = None

    def write(self, req: DownstreamWrite) -> None:
        if req.downstream_name != self.downstream_name:
            raise ValueError(f"Downstream mismatch: expected={self.downstream_name} got={req.downstream_name}")
        conn = self._conn
        if conn is None:
            raise DeliveryError("EVOK WebSocket is not connected", downstream=self.downstream_name)
        logger.debug("EVOK send: %s", req.payload)
        try:
            conn.send(req.payload)
        except (ConnectionClosed, OSError) as e:
            raise DeliveryError(f"EVOK send failed: {e!r}", downstream=self.downstream_name) from e

    def _open(self) -> Any:
        return self._connect(
            self._cfg.url,
            open_timeout=self._cfg.open_timeout,
            close_timeout=self._cfg.close_timeout,
        )

    def _run(self) -> None:
        delay = self._cfg.reconnect_delay
        while not self._stop.is_set():
            conn = self._conn
            if conn is None:
                try:
                    conn = self._open()
                except (OSError, WebSocketException) as e:
                    logger.warning("Received connect error %r, retrying in %ss", e, delay)
                    self._stop.wait(delay)
                    delay = min(delay * 2, self._cfg.reconnect_delay_max)
                    continue
                self._conn = conn
                delay = self._cfg.reconnect_delay
                logger.info("Reconnected to EVOK on %s", self._cfg.url)

            reason: Any = None
            try:
                for frame in conn:
                    self._emit(frame)
            except (ConnectionClosed, OSError) as e:
                reason = e
            self._conn = None
            if not self._stop.is_set():
                logger.warning("Disconnected from EVOK server: %r", reason)
                self._stop.wait(delay)

    def _emit(self, frame: Any) -> None:
        if self._handler is None:
            return
        try:
            self._handler(
                RawDownstreamMessage(
                    downstream_name=self.downstream_name,
                    address=self._cfg.url,
                    payload=frame,
                )
            )
        except Exception:
            logger.exception("EVOK message handler failed")
