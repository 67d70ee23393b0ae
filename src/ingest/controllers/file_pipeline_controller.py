"""
File Pipeline
Parses many XML files in parallel and fans the parsed roots into one bounded channel.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ingest.errors import ParseError, PipelineAbortedError
from ingest.managers.progress_manager import ProgressManager
from ingest.model import Node
from ingest.services.xml_parse_service import XmlParseService

logger = logging.getLogger(__name__)

# Marks the end of a queue: one per worker on the work queue, one on the output channel.
_CLOSED = object()


class PipelineStats:
    """Thread-safe counters describing one pipeline run."""

    def __init__(self):
        self._lock = threading.Lock()
        self.files_total = 0
        self.parsed = 0
        self.emitted = 0
        self.empty = 0
        self.skipped = 0
        self.skipped_paths: List[str] = []

    def record_file(self) -> None:
        with self._lock:
            self.files_total += 1

    def record_parsed(self, emitted: bool) -> None:
        with self._lock:
            self.parsed += 1
            if emitted:
                self.emitted += 1
            else:
                self.empty += 1

    def record_skipped(self, path: str) -> None:
        with self._lock:
            self.skipped += 1
            self.skipped_paths.append(path)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "files_total": self.files_total,
                "parsed": self.parsed,
                "emitted": self.emitted,
                "empty": self.empty,
                "skipped": self.skipped,
                "skipped_paths": list(self.skipped_paths),
            }


class NodeChannel:
    """
    Consumer side of the pipeline output.

    Iterating yields parsed nodes until every worker has finished; the loop
    ends on channel closure. In fail-fast mode the first recorded failure is
    raised once the channel has been drained.
    """

    def __init__(self, channel: queue.Queue, controller: FilePipelineController):
        self._channel = channel
        self._controller = controller
        self.closed = False

    @property
    def stats(self) -> PipelineStats:
        return self._controller.stats

    def __iter__(self) -> Iterator[Node]:
        while not self.closed:
            item = self._channel.get()
            if item is _CLOSED:
                self.closed = True
                break
            yield item

        failure = self._controller.failure
        if failure is not None:
            path, err = failure
            raise PipelineAbortedError(path, err)


class FilePipelineController:
    """
    Bounded worker pool over a sequence of file paths.

    One producer thread feeds paths into a work queue sized to the pool,
    `workers` threads parse them, and every parsed root (or the first node
    named `root_tag`) is put on an output channel of `buffer_capacity`
    items. Workers block while the channel is full.
    """

    def __init__(
            self,
            *,
            workers: Optional[int] = None,
            buffer_capacity: Optional[int] = None,
            root_tag: Optional[str] = None,
            fail_fast: bool = False,
            parser: Optional[XmlParseService] = None,
            show_progress: bool = False,
    ):
        self.workers = max(1, int(workers or (os.cpu_count() or 4)))
        self.buffer_capacity = max(1, int(buffer_capacity or self.workers))
        self.root_tag = root_tag or None
        self.fail_fast = fail_fast
        self.parser = parser or XmlParseService()
        self.show_progress = show_progress

        self.stats = PipelineStats()
        self.failure: Optional[Tuple[str, Exception]] = None

        self._stop_event = threading.Event()
        self._failure_lock = threading.Lock()
        self._work: queue.Queue = queue.Queue(maxsize=self.workers)
        self._channel: queue.Queue = queue.Queue(maxsize=self.buffer_capacity)
        self._threads: List[threading.Thread] = []
        self._progress: Optional[ProgressManager] = None
        self._has_started = False

    def run(self, filenames: Iterable[str]) -> NodeChannel:
        """Starts producer, workers and closer threads and returns the output channel."""
        if self._has_started:
            raise RuntimeError("FilePipelineController.run() may only be called once.")
        self._has_started = True

        total = len(filenames) if isinstance(filenames, (list, tuple)) else None
        self._progress = ProgressManager(total, desc="Parsing XML", enabled=self.show_progress)

        logger.debug(
            "Starting pipeline: %d workers, channel capacity %d, root tag %r, fail_fast=%s",
            self.workers, self.buffer_capacity, self.root_tag, self.fail_fast,
        )

        producer = threading.Thread(target=self._produce, args=(filenames,), name="Producer", daemon=True)
        workers = [
            threading.Thread(target=self._worker_loop, args=(f"Worker-{i + 1}",), name=f"Worker-{i + 1}", daemon=True)
            for i in range(self.workers)
        ]
        closer = threading.Thread(target=self._close, args=(producer, workers), name="Closer", daemon=True)

        self._threads = [producer, *workers, closer]
        for t in self._threads:
            t.start()

        return NodeChannel(self._channel, self)

    def cancel(self) -> None:
        """Stops feeding new files; in-flight files finish and the channel still closes."""
        logger.info("Pipeline cancellation requested.")
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        for t in self._threads:
            t.join(timeout)

    def _produce(self, filenames: Iterable[str]) -> None:
        try:
            for path in filenames:
                if self._stop_event.is_set():
                    logger.debug("Producer stopped early.")
                    break
                self.stats.record_file()
                self._work.put(path)
        except Exception as e:
            logger.error("Filename source failed: %s", e, exc_info=True)
        finally:
            for _ in range(self.workers):
                self._work.put(_CLOSED)

    def _worker_loop(self, name: str) -> None:
        logger.debug("[%s] Started.", name)
        while True:
            path = self._work.get()
            if path is _CLOSED:
                break
            # After a stop the remaining queued paths are drained, not parsed.
            if self._stop_event.is_set():
                continue
            try:
                self._process(path)
            except Exception as e:
                logger.error("[%s] Unexpected error on %s: %s", name, path, e, exc_info=True)
                self._handle_failure(path, ParseError(path, e))
        logger.debug("[%s] Finished.", name)

    def _process(self, path: str) -> None:
        try:
            doc = self.parser.parse_file(path)
        except ParseError as e:
            self._handle_failure(path, e)
            return

        node = doc.root
        if node is not None and self.root_tag:
            node = node.find_first(self.root_tag)

        self.stats.record_parsed(emitted=node is not None)
        if node is None:
            logger.debug("No %s element in %s.", self.root_tag or "root", path)
        else:
            self._channel.put(node)

        self._progress.advance(docs_count=self.stats.emitted)

    def _handle_failure(self, path: str, err: ParseError) -> None:
        self.stats.record_skipped(path)
        self._progress.advance(failures_count=self.stats.skipped)

        if not self.fail_fast:
            logger.warning("Skipping %s: %s", path, err.cause)
            return

        logger.error("Aborting pipeline on %s: %s", path, err.cause)
        with self._failure_lock:
            if self.failure is None:
                self.failure = (path, err)
        self._stop_event.set()

    def _close(self, producer: threading.Thread, workers: List[threading.Thread]) -> None:
        producer.join()
        for w in workers:
            w.join()

        self._progress.close(self.stats.emitted, self.stats.skipped)
        logger.debug("All workers finished; closing channel.")
        self._channel.put(_CLOSED)


def run(
        root_tag: Optional[str],
        filenames: Iterable[str],
        workers: int,
        buffer_capacity: int,
        *,
        fail_fast: bool = False,
        show_progress: bool = False,
) -> NodeChannel:
    """Convenience wrapper: builds a controller, starts it and returns its channel."""
    controller = FilePipelineController(
        workers=workers,
        buffer_capacity=buffer_capacity,
        root_tag=root_tag,
        fail_fast=fail_fast,
        show_progress=show_progress,
    )
    return controller.run(filenames)
