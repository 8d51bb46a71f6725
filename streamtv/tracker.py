import logging
from typing import Optional
from .models import Content, Episode, PlaybackProgress, now_ms
from .progress import PlaybackProgressStore

logger = logging.getLogger(__name__)


def build_progress(
    content: Content,
    current_time: float,
    duration: float,
    episode: Optional[Episode] = None,
    timestamp: Optional[int] = None,
) -> PlaybackProgress:
    """
    Snapshot the player position for a catalog item, copying the display
    fields so continue-watching cards render without another catalog fetch.
    """
    duration = max(0.0, duration)
    current_time = min(max(0.0, current_time), duration)
    percent = (current_time / duration * 100) if duration > 0 else 0.0

    return PlaybackProgress(
        content_id=content.id,
        episode_id=episode.id if episode else None,
        progress=percent,
        current_time=current_time,
        duration=duration,
        timestamp=timestamp if timestamp is not None else now_ms(),
        content_name=content.name or "",
        content_capa=content.capa or "",
        content_tipo=content.tipo or "",
        season=episode.temporada if episode else None,
        episode=episode.numero if episode else None,
    )


class ProgressTracker:
    """Called from the player's time updates; records where playback stands."""

    def __init__(self, store: PlaybackProgressStore):
        self.store = store

    def record(
        self,
        content: Content,
        current_time: float,
        duration: float,
        episode: Optional[Episode] = None,
    ) -> Optional[PlaybackProgress]:
        if duration <= 0:
            # Metadata not loaded yet
            logger.debug(f"Ignoring position for content {content.id}: unknown duration")
            return None

        progress = build_progress(content, current_time, duration, episode)
        self.store.save(progress)
        return progress

    def resume_position(self, content_id: int, episode_id: Optional[int] = None) -> float:
        """Where to seek when playback starts; 0 when nothing worth resuming."""
        record = self.store.get(content_id, episode_id)
        if record is None or record.progress >= self.store.max_progress:
            return 0.0
        return record.current_time
