#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ....lib.constants import DEFAULT_TIMEOUT
from ....lib.exceptions import FetchError
from ..base import DownstreamAdapter, RawMessageHandler
from ..models import DownstreamWrite, RawDownstreamMessage


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvokRestConfig:
    url: str
    timeout: float = DEFAULT_TIMEOUT


class EvokRestAdapter(DownstreamAdapter):
    """
    EVOK snapshot reader: each poll() does one GET and emits the body
    as a single message, decoding is left to the codec
    """

    def __init__(self, *, cfg: EvokRestConfig, client: Optional[httpx.Client] = None) -> None:
        self._cfg = cfg
        self._client = client or httpx.Client(timeout=cfg.timeout)
        self._handler: Optional[RawMessageHandler] = None

    @property
    def downstream_name(self) -> str:
        return "evok_rest"

    def start(self, handler: RawMessageHandler) -> None:
        self._handler = handler

    def poll(self) -> None:
        """Fetch one snapshot. Raises FetchError on network or HTTP status errors."""
        if self._handler is None:
            raise RuntimeError("EvokRestAdapter.poll() called before start()")
        try:
            r = self._client.get(self._cfg.url)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Couldn't read EVOK data: {e}",
                url=self._cfg.url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Couldn't connect to EVOK: {e!r}", url=self._cfg.url) from e

        self._handler(
            RawDownstreamMessage(
                downstream_name=self.downstream_name,
                address=self._cfg.url,
                payload=r.text,
                meta={"status_code": r.status_code},
            )
        )

    def stop(self) -> None:
        try:
            self._client.close()
        except Exception:
            logger.exception("EVOK REST client close failed")

    def write(self, req: DownstreamWrite) -> None:
        raise NotImplementedError("EVOK REST snapshot is read-only")
