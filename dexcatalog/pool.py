"""Bounded worker pool with a cooperative completion throttle.

Workers pull keys from a shared input queue and push one :class:`Outcome`
per key onto a single fan-in queue drained by the calling thread.
"""

from __future__ import annotations

import queue
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional


@dataclass(frozen=True)
class Outcome:
    key: Any
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Throttle:
    """Pause every worker after each ``every`` completed items.

    The count is global across workers. The worker that completes the K-th
    item holds the gate while it sleeps, and workers take their next key only
    through :meth:`gate`, so no new item starts until the pause is over.
    """

    def __init__(
        self,
        every: int = 25,
        delay_seconds: float = 0.35,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.every = every
        self.delay_seconds = delay_seconds
        self.completed = 0
        self.pauses = 0
        self._sleep = sleep
        self._lock = threading.Lock()
        self._gate = threading.Lock()

    @contextmanager
    def gate(self) -> Iterator[None]:
        """Block while a pause is in progress."""
        with self._gate:
            yield

    def checkpoint(self) -> None:
        with self._lock:
            self.completed += 1
            pause = self.every > 0 and self.completed % self.every == 0
            if pause:
                self.pauses += 1
                # held until the sleep ends
                self._gate.acquire()
        if not pause:
            return
        try:
            if self.delay_seconds > 0:
                self._sleep(self.delay_seconds)
        finally:
            self._gate.release()


def iter_pool(
    keys: Iterable[Any],
    worker: Callable[[Any], Any],
    *,
    concurrency: int = 8,
    throttle: Optional[Throttle] = None,
) -> Iterator[Outcome]:
    """Run ``worker`` over ``keys`` on at most ``concurrency`` threads.

    Yields exactly one outcome per key in completion order. An exception
    raised by ``worker`` is captured in ``Outcome.error``; siblings keep going.
    """
    keys = list(keys)
    if not keys:
        return

    pending: "queue.Queue[Any]" = queue.Queue()
    for key in keys:
        pending.put(key)
    results: "queue.Queue[Outcome]" = queue.Queue()

    def _next_key() -> Any:
        if throttle is None:
            return pending.get_nowait()
        with throttle.gate():
            return pending.get_nowait()

    def _run() -> None:
        while True:
            try:
                key = _next_key()
            except queue.Empty:
                return
            try:
                outcome = Outcome(key, value=worker(key))
            except Exception as exc:  # recorded per item, never re-raised here
                outcome = Outcome(key, error=exc)
            if throttle is not None:
                throttle.checkpoint()
            results.put(outcome)

    n_workers = max(1, min(concurrency, len(keys)))
    threads = [
        threading.Thread(target=_run, name=f"dexcatalog-worker-{i}", daemon=True)
        for i in range(n_workers)
    ]
    for t in threads:
        t.start()

    for _ in range(len(keys)):
        yield results.get()

    for t in threads:
        t.join()


def run_pool(
    keys: Iterable[Any],
    worker: Callable[[Any], Any],
    *,
    concurrency: int = 8,
    throttle: Optional[Throttle] = None,
) -> List[Outcome]:
    """Collect :func:`iter_pool` into a list."""
    return list(iter_pool(keys, worker, concurrency=concurrency, throttle=throttle))
