"""Recorder event publisher for the pub/sub channel."""

import logging
from pubsub import pub

from ..models.events import StateChanged, VolumeSample, RecordingCompleted, RecordingFailed

logger = logging.getLogger(__name__)


class RecorderEventPublisher:
    """Publishes recorder events using pubsub.pub, one topic per event type."""

    def __init__(self, topic_prefix: str = "recorder"):
        """Initialize recorder event publisher.

        Args:
            topic_prefix: Root topic; events go to ``<prefix>.state``,
                ``<prefix>.volume``, ``<prefix>.completed`` and ``<prefix>.failed``
        """
        self.topic_prefix = topic_prefix
        self.state_topic = f"{topic_prefix}.state"
        self.volume_topic = f"{topic_prefix}.volume"
        self.completed_topic = f"{topic_prefix}.completed"
        self.failed_topic = f"{topic_prefix}.failed"
        self._topics = {
            StateChanged: self.state_topic,
            VolumeSample: self.volume_topic,
            RecordingCompleted: self.completed_topic,
            RecordingFailed: self.failed_topic,
        }
        logger.info(f"RecorderEventPublisher initialized with topic prefix: {topic_prefix}")

    def topic_for(self, event) -> str:
        try:
            return self._topics[type(event)]
        except KeyError:
            raise TypeError(f"Not a recorder event: {type(event).__name__}") from None

    def publish(self, event) -> None:
        """Publish a recorder event to its topic.

        Delivery is fire-and-forget: a listener that raises is logged and
        the recorder carries on.

        Args:
            event: StateChanged, VolumeSample, RecordingCompleted or RecordingFailed
        """
        topic = self.topic_for(event)
        try:
            pub.sendMessage(topic, event=event)
        except Exception as e:
            logger.error(f"Listener on {topic} failed: {e}", exc_info=True)
