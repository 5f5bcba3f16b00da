"""Deferred recalculation of session positions."""

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

_logger = logging.getLogger(__name__)


@dataclass
class RecalculationScheduler:
    """Runs position recalculation outside the triggering request.

    At most one worker per user is alive at a time. A request that arrives
    while that worker is pending or running marks the user dirty, and the
    worker makes one more pass before exiting. Inside an event loop the worker
    is a task that pushes the blocking store work to a thread; without a loop
    it is a daemon thread. Failures are logged and not retried.
    """

    recalculate: Callable[[UUID], object]
    _tasks: dict[UUID, "asyncio.Task[None]"] = field(
        default_factory=dict, init=False, repr=False
    )
    _threads: dict[UUID, threading.Thread] = field(
        default_factory=dict, init=False, repr=False
    )
    _dirty: set[UUID] = field(default_factory=set, init=False, repr=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def schedule(self, user_id: UUID) -> None:
        """Queue a recalculation for the user and return immediately."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        with self._lock:
            self._dirty.add(user_id)
            if user_id in self._tasks or user_id in self._threads:
                return
            if loop is not None:
                self._tasks[user_id] = loop.create_task(self._run(user_id))
                return
            thread = threading.Thread(
                target=self._run_blocking,
                args=(user_id,),
                name=f"recalculate-{user_id}",
                daemon=True,
            )
            self._threads[user_id] = thread
        thread.start()

    def is_pending(self, user_id: UUID) -> bool:
        """Return true while a recalculation worker exists for the user."""
        with self._lock:
            return user_id in self._tasks or user_id in self._threads

    async def drain(self) -> None:
        """Wait until every scheduled recalculation has finished."""
        while True:
            with self._lock:
                tasks = list(self._tasks.values())
                threads = list(self._threads.values())
            if not tasks and not threads:
                return
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            for thread in threads:
                await asyncio.to_thread(thread.join)

    def _claim(self, user_id: UUID, workers: dict) -> bool:
        """Consume the dirty flag, or retire the worker when nothing is left."""
        with self._lock:
            if user_id in self._dirty:
                self._dirty.discard(user_id)
                return True
            workers.pop(user_id, None)
            return False

    def _recalculate_logged(self, user_id: UUID) -> None:
        try:
            self.recalculate(user_id)
        except Exception:
            _logger.exception("Deferred recalculation failed: user_id=%s", user_id)

    async def _run(self, user_id: UUID) -> None:
        try:
            while self._claim(user_id, self._tasks):
                await asyncio.to_thread(self._recalculate_logged, user_id)
        finally:
            with self._lock:
                if self._tasks.get(user_id) is asyncio.current_task():
                    self._tasks.pop(user_id, None)

    def _run_blocking(self, user_id: UUID) -> None:
        try:
            while self._claim(user_id, self._threads):
                self._recalculate_logged(user_id)
        finally:
            with self._lock:
                if self._threads.get(user_id) is threading.current_thread():
                    self._threads.pop(user_id, None)
