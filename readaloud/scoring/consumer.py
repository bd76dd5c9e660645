"""Hands completed recordings to a scoring backend off the event-loop thread."""

import logging
import queue
import threading
from typing import Callable, NamedTuple, Optional

from pubsub import pub

from ..models.events import RecordingCompleted
from ..models.scoring import ScoreResult
from .base import AbstractScoringBackend

logger = logging.getLogger(__name__)


class ScoringTask(NamedTuple):
    """A clip waiting to be scored."""
    event: RecordingCompleted
    keywords: str
    line_index: Optional[int]


class ScoringConsumer:
    """Subscribes to completed recordings and scores them on a worker thread."""

    def __init__(self,
                 backend: AbstractScoringBackend,
                 topic: str = "recorder.completed",
                 result_callback: Optional[Callable[[ScoreResult], None]] = None,
                 error_callback: Optional[Callable[[str, Exception], None]] = None):
        """Initialize scoring consumer.

        Args:
            backend: Scoring backend to call
            topic: Completed-recording topic to subscribe to
            result_callback: Receives each ScoreResult
            error_callback: Receives (session_id, exception) when scoring fails
        """
        self.backend = backend
        self.topic = topic
        self.result_callback = result_callback
        self.error_callback = error_callback

        self.keywords = ""
        self.line_index: Optional[int] = None

        self.task_queue: "queue.Queue[Optional[ScoringTask]]" = queue.Queue()
        self.shutdown_event = threading.Event()
        self.worker_thread = threading.Thread(target=self._worker_loop, daemon=True)
        self.worker_thread.name = "ScoringWorker"
        self.worker_thread.start()

        pub.subscribe(self._on_completed, topic)
        logger.info(f"ScoringConsumer initialized - subscribed to {topic}")

    def set_prompt(self, keywords: str, line_index: Optional[int] = None) -> None:
        """Set the text the next clips are scored against."""
        self.keywords = keywords
        self.line_index = line_index

    def _on_completed(self, event: RecordingCompleted) -> None:
        if self.shutdown_event.is_set():
            return
        self.task_queue.put(ScoringTask(event=event, keywords=self.keywords, line_index=self.line_index))
        logger.debug(f"Queued session {event.session_id} for scoring")

    def _worker_loop(self) -> None:
        while True:
            task = self.task_queue.get()
            if task is None:
                self.task_queue.task_done()
                break
            try:
                self._score(task)
            finally:
                self.task_queue.task_done()

    def _score(self, task: ScoringTask) -> None:
        session_id = task.event.session_id
        try:
            result = self.backend.score(task.event.result, task.keywords)
        except Exception as e:
            logger.error(f"Scoring failed for session {session_id}: {e}", exc_info=True)
            if self.error_callback:
                self.error_callback(session_id, e)
            return

        if result.line_index is None:
            result.line_index = task.line_index
        logger.info(f"Session {session_id} scored {result.score} by {result.service}")
        if self.result_callback:
            self.result_callback(result)

    def shutdown(self, timeout: float = 5.0) -> None:
        """Finish queued clips, then stop the worker."""
        if self.shutdown_event.is_set():
            return
        self.shutdown_event.set()
        pub.unsubscribe(self._on_completed, self.topic)
        self.task_queue.put(None)
        self.worker_thread.join(timeout=timeout)
        if self.worker_thread.is_alive():
            logger.warning("Scoring worker did not stop cleanly")
