#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional
from urllib.parse import urlsplit

import paho.mqtt.client as paho_mqtt

from ....lib.constants import DEFAULT_TIMEOUT, MQTT_KEEPALIVE, MQTT_QOS, MQTT_RETAIN
from ....lib.exceptions import DeliveryError
from ..base import DownstreamAdapter, RawMessageHandler
from ..models import DownstreamWrite, RawDownstreamMessage


logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"tcp": 1883, "mqtt": 1883}


@dataclass(frozen=True)
class MqttConnectionConfig:
    """
    MQTT connection settings for paho-mqtt client
    """

    host: str
    port: int = 1883
    client_id: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    keepalive: int = MQTT_KEEPALIVE
    qos: int = MQTT_QOS
    retain: bool = MQTT_RETAIN
    publish_timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "MqttConnectionConfig":
        """
        Build config from a broker url.

        Examples:
            from_url("tcp://127.0.0.1:1883") -> host="127.0.0.1", port=1883
            from_url("mqtt://broker")        -> host="broker", port=1883
        """
        parts = urlsplit(url if "://" in url else f"tcp://{url}")
        if parts.scheme not in _DEFAULT_PORTS:
            raise ValueError(f"Unsupported broker url scheme: {url!r}")
        if not parts.hostname:
            raise ValueError(f"Broker url has no host: {url!r}")
        return cls(
            host=parts.hostname,
            port=parts.port or _DEFAULT_PORTS[parts.scheme],
            username=parts.username,
            password=parts.password,
            **kwargs,
        )


class MqttAdapter(DownstreamAdapter):
    """
    Real MQTT adapter using paho-mqtt

    Notes:
      - In tests we inject a mocked paho client via `client=...`
      - In production we create the client automatically
      - paho runs its network loop in a background thread, so the
        message handler is called from that thread
    """

    def __init__(
        self,
        *,
        cfg: MqttConnectionConfig,
        subscriptions: Iterable[str],
        client: Optional[Any] = None,
    ) -> None:
        self._cfg = cfg
        self._subs = list(subscriptions or [])
        self._handler: Optional[RawMessageHandler] = None

        if client is None:
            self._client = paho_mqtt.Client(
                paho_mqtt.CallbackAPIVersion.VERSION2,
                client_id=cfg.client_id or "",
            )
        else:
            self._client = client

        if cfg.username:
            self._client.username_pw_set(cfg.username, cfg.password)

        # Callbacks
        self._client.on_connect = self._on_connect
        self._client.on_message = self._on_message
        self._client.on_disconnect = self._on_disconnect

    @property
    def downstream_name(self) -> str:
        return "mqtt"

    def start(self, handler: RawMessageHandler) -> None:
        """Connect and subscribe. Connection errors propagate to the caller."""
        self._handler = handler
        logger.info(
            "Starting MQTT adapter: host=%s port=%s client_id=%r subs=%d",
            self._cfg.host,
            self._cfg.port,
            self._cfg.client_id,
            len(self._subs),
        )
        self._client.connect(self._cfg.host, self._cfg.port, keepalive=self._cfg.keepalive)

        for topic in self._subs:
            self._client.subscribe(topic, qos=self._cfg.qos)

        # Start network loop in background thread
        self._client.loop_start()

    def stop(self) -> None:
        logger.info("Stopping MQTT adapter")
        try:
            self._client.loop_stop()
        finally:
            try:
                self._client.disconnect()
            except Exception:
                logger.exception("MQTT disconnect failed")

    def write(self, req: DownstreamWrite) -> None:
        """
        Publish and wait for local delivery, bounded by publish_timeout.

        Raises DeliveryError when paho refuses the message or it is not
        delivered in time.
        """
        if req.downstream_name != self.downstream_name:
            raise ValueError(f"Downstream mismatch: expected={self.downstream_name} got={req.downstream_name}")
        meta = req.meta or {}
        qos = meta.get("qos", self._cfg.qos)
        retain = meta.get("retain", self._cfg.retain)

        payload_bytes = req.payload
        if isinstance(payload_bytes, str):
            payload_bytes = payload_bytes.encode("utf-8")
        logger.debug("MQTT publish: topic=%s payload=%r retain=%s", req.address, payload_bytes, retain)

        info = self._client.publish(req.address, payload=payload_bytes, qos=qos, retain=retain)
        if info.rc != paho_mqtt.MQTT_ERR_SUCCESS:
            raise DeliveryError(
                f"Failed to publish packet: {paho_mqtt.error_string(info.rc)}",
                downstream=self.downstream_name,
                address=req.address,
            )
        try:
            info.wait_for_publish(timeout=self._cfg.publish_timeout)
        except (RuntimeError, ValueError) as e:
            raise DeliveryError(
                f"Failed to publish packet: {e}", downstream=self.downstream_name, address=req.address
            ) from e
        if not info.is_published():
            raise DeliveryError(
                f"Publish not confirmed within {self._cfg.publish_timeout}s",
                downstream=self.downstream_name,
                address=req.address,
            )

    # ---- paho callbacks ----

    def _on_connect(self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any = None) -> None:
        logger.info("MQTT connected: rc=%s", reason_code)
        # Resubscribe after automatic reconnects
        for topic in self._subs:
            try:
                client.subscribe(topic, qos=self._cfg.qos)
            except Exception:
                logger.exception("MQTT subscribe failed: %s", topic)

    def _on_disconnect(
        self, client: Any, userdata: Any, flags: Any, reason_code: Any = None, properties: Any = None
    ) -> None:
        logger.warning("MQTT disconnected: rc=%s", reason_code)

    def _on_message(self, client: Any, userdata: Any, msg: Any) -> None:
        if not self._handler:
            return
        raw = RawDownstreamMessage(
            downstream_name=self.downstream_name,
            address=str(getattr(msg, "topic", "")),
            payload=getattr(msg, "payload", None),
            meta={"qos": getattr(msg, "qos", None), "retain": getattr(msg, "retain", None)},
        )
        try:
            self._handler(raw)
        except Exception:
            logger.exception("MQTT message handler failed: topic=%s", raw.address)
