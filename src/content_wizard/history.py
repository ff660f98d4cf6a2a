"""In-session history log of compositions, most recent first."""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional

from content_wizard.models import (
    AssetBundle,
    GenerationConfig,
    HistoryEntry,
    Script,
    Topic,
    new_id,
    utcnow,
)

logger = logging.getLogger(__name__)


class HistoryLedger:
    """Append/update log keyed by (topic id, script title).

    Entries hold deep copies, so later edits to the live script never change
    what was recorded. Nothing is evicted and nothing is persisted.
    """

    def __init__(self) -> None:
        self._entries: List[HistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries())

    def entries(self) -> List[HistoryEntry]:
        """Snapshot of the log, most recent first."""
        return [entry.model_copy(deep=True) for entry in self._entries]

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry.model_copy(deep=True)
        return None

    def _index_of(self, topic_id: str, title: str) -> int:
        for i, entry in enumerate(self._entries):
            if entry.topic.id == topic_id and entry.script.title == title:
                return i
        return -1

    def upsert(
        self,
        topic: Topic,
        config: GenerationConfig,
        script: Script,
        assets: AssetBundle,
    ) -> HistoryEntry:
        """Record a composition.

        An existing entry for the same topic id and script title is replaced
        in place (same id, same position, fresh timestamp); otherwise a new
        entry is prepended.
        """
        idx = self._index_of(topic.id, script.title)
        entry = HistoryEntry(
            id=self._entries[idx].id if idx >= 0 else new_id("hist"),
            updated_at=utcnow(),
            topic=topic.model_copy(deep=True),
            config=config.model_copy(deep=True),
            script=script.model_copy(deep=True),
            assets=assets.model_copy(deep=True),
        )
        if idx >= 0:
            self._entries[idx] = entry
            logger.debug("Updated history entry %s (%s)", entry.id, script.title)
        else:
            self._entries.insert(0, entry)
            logger.debug("Added history entry %s (%s)", entry.id, script.title)
        return entry.model_copy(deep=True)
