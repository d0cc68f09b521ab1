#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, List, Optional, Sequence

from ..lib.constants import DEFAULT_TIMEOUT, SINK_QUEUE_SIZE
from ..lib.exceptions import DeliveryError
from .downstream.models import DownstreamWrite

logger = logging.getLogger(__name__)

WriteFn = Callable[[DownstreamWrite], None]

_STOP = object()


class SinkWriter:
    """
    Single writer thread in front of one downstream sink

    Producers (any thread) submit whole batches into a bounded queue;
    the writer thread takes one batch at a time and writes its items in
    order. Batches never interleave, so nothing else needs a lock around
    the sink.

    Failure policy:
      - DeliveryError on one item: logged, next item is written
      - full queue for longer than submit_timeout: batch dropped and logged
      - submit after stop(): batch dropped and logged
    """

    def __init__(
        self,
        name: str,
        write: WriteFn,
        *,
        maxsize: int = SINK_QUEUE_SIZE,
        submit_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.name = name
        self._write = write
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._submit_timeout = submit_timeout
        self._thread: Optional[threading.Thread] = None
        self._closed = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            logger.warning("Sink writer %r already started", self.name)
            return
        self._closed.clear()
        self._thread = threading.Thread(target=self._run, name=f"sink-{self.name}", daemon=True)
        self._thread.start()

    def submit(self, batch: Sequence[DownstreamWrite]) -> bool:
        """Queue a batch for writing. Returns False if the batch was dropped."""
        if not batch:
            return True
        if self._closed.is_set():
            logger.warning("Sink %r is stopped, dropping %d item(s)", self.name, len(batch))
            return False
        try:
            self._queue.put(list(batch), timeout=self._submit_timeout)
        except queue.Full:
            logger.error(
                "Sink %r queue is full for %ss, dropping %d item(s)", self.name, self._submit_timeout, len(batch)
            )
            return False
        return True

    def join(self) -> None:
        """Block until every queued batch has been written."""
        self._queue.join()

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting new batches, write what is already queued, then exit.
        Waits at most `timeout` seconds for the drain.
        """
        if self._closed.is_set():
            return
        self._closed.set()
        if self._thread is None:
            return
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Sink %r did not drain in time, abandoning queued items", self.name)
            return
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Sink %r writer still busy after %ss", self.name, timeout)
        self._thread = None

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._write_batch(item)  # type: ignore[arg-type]
            finally:
                self._queue.task_done()

    def _write_batch(self, batch: List[DownstreamWrite]) -> None:
        for req in batch:
            try:
                self._write(req)
            except DeliveryError as e:
                logger.warning("Sink %r: delivery to %s failed: %s", self.name, req.address, e)
            except Exception:
                logger.exception("Sink %r: unexpected error writing to %s", self.name, req.address)
