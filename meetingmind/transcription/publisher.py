"""Pub/sub publishers for transcript snapshots and pipeline events."""

import logging
from typing import Callable, List
from pubsub import pub

from ..models.events import UtteranceEvent, PipelineErrorEvent
from ..models.transcription import TranscriptEntry

logger = logging.getLogger(__name__)

TRANSCRIPT_TOPIC = "transcript.update"
UTTERANCE_TOPIC = "utterance.completed"
ERROR_TOPIC = "pipeline.error"


class TranscriptPublisher:
    """Publishes transcript snapshots using pubsub.pub."""

    def __init__(self, topic: str = TRANSCRIPT_TOPIC):
        """Initialize transcript publisher.

        Args:
            topic: Pub/sub topic name for transcript snapshots
        """
        self.topic = topic
        logger.info(f"TranscriptPublisher initialized with topic: {topic}")

    def publish_snapshot(self, entries: List[TranscriptEntry]) -> None:
        """Publish a transcript snapshot to the pub/sub topic."""
        pub.sendMessage(self.topic, entries=entries)
        logger.debug(f"Published transcript snapshot ({len(entries)} entries)")

    def get_callback(self) -> Callable[[List[TranscriptEntry]], None]:
        """Get callback function for TranscriptReconciler to use."""
        return self.publish_snapshot


class PipelineEventPublisher:
    """Publishes completed utterances and dropped-work errors."""

    def __init__(self, utterance_topic: str = UTTERANCE_TOPIC, error_topic: str = ERROR_TOPIC):
        self.utterance_topic = utterance_topic
        self.error_topic = error_topic

    def publish_utterance(self, event: UtteranceEvent) -> None:
        pub.sendMessage(self.utterance_topic, event=event)

    def publish_error(self, event: PipelineErrorEvent) -> None:
        pub.sendMessage(self.error_topic, event=event)
        logger.debug(f"Published {event.kind} error for {event.source}: {event.message}")
