"""Rich console view of the reconciled transcript."""

import logging
import threading
from datetime import datetime
from typing import List, Optional, Dict

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.transcription import TranscriptEntry
from ..transcription.publisher import TRANSCRIPT_TOPIC

logger = logging.getLogger(__name__)

SOURCE_STYLES = {"near": "cyan", "far": "magenta"}


class TranscriptView:
    """Keeps the latest transcript snapshot and renders it as a table."""

    def __init__(self,
                 source_labels: Dict[str, str],
                 topic: str = TRANSCRIPT_TOPIC,
                 console: Optional[Console] = None):
        self.source_labels = source_labels
        self.topic = topic
        self.console = console or Console()
        self.entries: List[TranscriptEntry] = []
        self.lock = threading.Lock()

        pub.subscribe(self._on_snapshot, topic)
        logger.info(f"TranscriptView subscribed to {topic}")

    def _on_snapshot(self, entries: List[TranscriptEntry]) -> None:
        with self.lock:
            self.entries = list(entries)

    def build_table(self) -> Table:
        """Table of the latest snapshot: time, speaker, text."""
        table = Table(title="📝 Transcript", show_header=True, header_style="bold magenta")
        table.add_column("Time", style="dim", no_wrap=True)
        table.add_column("Source", no_wrap=True)
        table.add_column("Text", style="white")

        with self.lock:
            entries = list(self.entries)
        for entry in entries:
            created = datetime.fromtimestamp(entry.created_at / 1000.0).strftime("%H:%M:%S")
            label = self.source_labels.get(entry.source, entry.source)
            style = SOURCE_STYLES.get(entry.source, "white")
            table.add_row(created, f"[{style}]{label}[/{style}]", entry.text)
        return table

    def render(self) -> None:
        with self.lock:
            empty = not self.entries
        if empty:
            self.console.print(Panel("No speech transcribed", border_style="yellow"))
            return
        self.console.print(self.build_table())

    def close(self) -> None:
        try:
            pub.unsubscribe(self._on_snapshot, self.topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
