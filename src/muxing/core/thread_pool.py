"""
=============================================================================
WORKER POOL
=============================================================================

Accepted connections are queued and served by a bounded set of worker
threads, so one slow client never stalls the accept loop.

    accept loop ──submit()──▶ [ queue ] ──get()──▶ Worker-0 … Worker-N

    • min_workers threads start with the pool
    • one more is spawned per submit() while every worker is busy,
      up to max_workers
    • submit() returns False when the queue stays full; the server
      answers 503 in that case
    • shutdown() pushes one None per worker; a worker exits on None

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any, List
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: func(*args) on some worker."""

    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """Daemon thread pulling tasks until it receives None or is shut down."""

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args)
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s"
            )
        except Exception as e:
            # A failing connection must not take the worker down with it
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Bounded pool of worker threads.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutdown = False
        with self._lock:
            for _ in range(self.min_workers):
                self._spawn_worker()
        self._started = True

    def _spawn_worker(self) -> Worker:
        """Start one more worker. Caller holds the lock."""
        worker = Worker(self._task_queue, self._next_worker_id, self.idle_timeout)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        block: bool = True,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue func(*args) for a worker.

        Returns:
            True if queued, False if the queue stayed full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutdown:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put(Task(func=func, args=args), block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            if self.idle_workers == 0 and self._task_queue.qsize() > 0:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._spawn_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop all workers.

        Args:
            wait: Let queued tasks finish first.
            timeout: Upper bound on the wait for queued tasks.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline and time.time() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)

        for worker in self._workers:
            worker.shutdown()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass  # worker sees the shutdown flag on its next idle tick

        for worker in self._workers:
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)
