#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

from .models import DownstreamWrite, RawDownstreamMessage

RawMessageHandler = Callable[[RawDownstreamMessage], None]


class DownstreamAdapter(ABC):
    """
    Base interface for a downstream adapter

    Adapter responsibilities:
      - start(handler): adapter connects to its transport and begins
          producing RawDownstreamMessage to handler
      - write(req): write raw payload to transport (publish/send); raises
          DeliveryError when the write fails or its deadline expires
      - stop(): release transport resources
    """

    @property
    @abstractmethod
    def downstream_name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def start(self, handler: RawMessageHandler) -> None:
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def write(self, req: DownstreamWrite) -> None:
        raise NotImplementedError


class DownstreamCodec(ABC):
    """
    Base interface for raw <-> bridge model conversion per downstream

    decode(): inbound raw -> bridge value (raises ValueError on malformed input)
    encode(): bridge value -> raw payload

    Notes:
      - codec is stateless and reusable from any thread
    """

    @property
    @abstractmethod
    def downstream_name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def decode(self, raw: Any) -> Any:
        """
        Convert raw downstream payload into bridge value
        """
        raise NotImplementedError

    @abstractmethod
    def encode(self, value: Any) -> Any:
        """
        Convert bridge value into raw downstream payload
        """
        raise NotImplementedError
