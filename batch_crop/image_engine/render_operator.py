from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any

from batch_crop.errors import RenderInProgress
from batch_crop.logger import get_logger

from .metrics import metrics

_logger = get_logger("render_operator")


@dataclass
class _RenderTask:
    fn: Callable[..., Any]
    args: tuple
    kwargs: dict
    future: Future
    label: str


class RenderOperator:
    """Serialized render queue / worker.

    Owns a single worker thread that executes render passes one at a time.
    Each scheduled pass returns a Future that completes when the pass is done;
    callers block on it before reading results or issuing the next pass.
    Scheduling while a pass is still in flight raises RenderInProgress.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[_RenderTask] = queue.Queue()
        self._thread = threading.Thread(target=self._worker, name="render-operator", daemon=True)
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._in_flight: Future | None = None
        self._thread.start()

    def schedule_render(self, fn: Callable[..., Any], *args, label: str = "render", **kwargs) -> Future:
        with self._lock:
            if self._stop_event.is_set():
                raise RuntimeError("render operator is shut down")
            if self._in_flight is not None and not self._in_flight.done():
                raise RenderInProgress(f"cannot start {label!r} while another render is in flight")
            fut: Future = Future()
            self._in_flight = fut
            self._queue.put(_RenderTask(fn=fn, args=args, kwargs=kwargs, future=fut, label=label))
        metrics.inc("render_operator.queued")
        _logger.debug("render queued: %s", label)
        return fut

    def _worker(self) -> None:
        while not self._stop_event.is_set() or not self._queue.empty():
            try:
                task: _RenderTask = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                if not task.future.set_running_or_notify_cancel():
                    continue
                try:
                    with metrics.timed(f"render.{task.label}"):
                        res = task.fn(*task.args, **task.kwargs)
                except Exception as exc:
                    _logger.debug("render failed: %s: %s", task.label, exc)
                    task.future.set_exception(exc)
                else:
                    task.future.set_result(res)
            finally:
                self._queue.task_done()

    def shutdown(self, wait: bool = True) -> None:
        self._stop_event.set()
        if wait:
            self._thread.join(timeout=5)
