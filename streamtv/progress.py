import json
import logging
from typing import List, Optional
from pydantic import ValidationError
from .config import settings
from .models import PlaybackProgress, ProgressKey
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)


def format_time(seconds: float) -> str:
    """Format a duration as M:SS (minutes are not wrapped into hours)."""
    seconds = max(0, int(seconds))
    mins, secs = divmod(seconds, 60)
    return f"{mins}:{secs:02d}"


def _make_key(content_id: int, episode_id: Optional[int]) -> ProgressKey:
    return (content_id, episode_id or None)


class PlaybackProgressStore:
    """
    Bounded list of playback checkpoints persisted as one JSON array under a
    single storage key. At most one record per (content_id, episode_id).

    New records go to the front; updates to an existing record keep its
    position. The list is trimmed positionally, so the tail is evicted first.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: Optional[str] = None,
        max_items: Optional[int] = None,
        min_progress: Optional[float] = None,
        max_progress: Optional[float] = None,
        continue_limit: Optional[int] = None,
    ):
        self.storage = storage
        self.key = key or settings.PROGRESS_STORAGE_KEY
        self.max_items = max_items if max_items is not None else settings.PROGRESS_MAX_ITEMS
        self.min_progress = min_progress if min_progress is not None else settings.CONTINUE_WATCHING_MIN_PROGRESS
        self.max_progress = max_progress if max_progress is not None else settings.CONTINUE_WATCHING_MAX_PROGRESS
        self.continue_limit = continue_limit if continue_limit is not None else settings.CONTINUE_WATCHING_LIMIT

    def _persist(self, records: List[PlaybackProgress]):
        payload = json.dumps([r.to_storage() for r in records])
        self.storage.set(self.key, payload)

    def get_all(self) -> List[PlaybackProgress]:
        raw = self.storage.get(self.key)
        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Stored progress under '{self.key}' is not valid JSON: {e}. Ignoring.")
            return []

        if not isinstance(data, list):
            logger.warning(f"Stored progress under '{self.key}' is not a list. Ignoring.")
            return []

        records = []
        for entry in data:
            try:
                records.append(PlaybackProgress.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed progress entry: {e.error_count()} error(s)")
        return records

    def get(self, content_id: int, episode_id: Optional[int] = None) -> Optional[PlaybackProgress]:
        key = _make_key(content_id, episode_id)
        for record in self.get_all():
            if record.key == key:
                return record
        return None

    def save(self, progress: PlaybackProgress):
        records = self.get_all()
        index = next((i for i, r in enumerate(records) if r.key == progress.key), None)

        if index is not None:
            records[index] = progress
        else:
            records.insert(0, progress)

        self._persist(records[:self.max_items])
        logger.debug(f"Saved progress {progress.key}: {progress.progress:.1f}%")

    def remove(self, content_id: int, episode_id: Optional[int] = None):
        key = _make_key(content_id, episode_id)
        records = self.get_all()
        remaining = [r for r in records if r.key != key]
        self._persist(remaining)
        if len(remaining) != len(records):
            logger.debug(f"Removed progress {key}")

    def get_continue_watching(self) -> List[PlaybackProgress]:
        """Partially watched records, most recently saved first."""
        started = [
            r for r in self.get_all()
            if self.min_progress < r.progress < self.max_progress
        ]
        started.sort(key=lambda r: r.timestamp, reverse=True)
        return started[:self.continue_limit]
