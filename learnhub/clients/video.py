# learnhub/clients/video.py
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from learnhub.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

MIN_PLAYBACK_ID_LENGTH = 11


@dataclass
class PlaybackInfo:
    playback_id: str
    stream_url: str
    thumbnail_url: Optional[str] = None


def is_valid_playback_id(playback_id: Optional[str]) -> bool:
    return bool(playback_id) and len(playback_id) >= MIN_PLAYBACK_ID_LENGTH


class VideoPlaybackProvider(ABC):
    @abstractmethod
    def playback_info(self, playback_id: str) -> PlaybackInfo: ...


class MuxPlaybackProvider(VideoPlaybackProvider):
    """Builds public HLS playback URLs for Mux assets."""

    def __init__(
        self,
        stream_base_url: str = "https://stream.mux.com",
        image_base_url: str = "https://image.mux.com",
    ):
        self.stream_base_url = stream_base_url.rstrip("/")
        self.image_base_url = image_base_url.rstrip("/")

    def playback_info(self, playback_id: str) -> PlaybackInfo:
        if not is_valid_playback_id(playback_id):
            logger.warning(f"Invalid playback id: {playback_id!r}")
            raise UpstreamServiceError("Invalid playback ID")
        return PlaybackInfo(
            playback_id=playback_id,
            stream_url=f"{self.stream_base_url}/{playback_id}.m3u8",
            thumbnail_url=f"{self.image_base_url}/{playback_id}/thumbnail.jpg",
        )


class InMemoryPlaybackProvider(VideoPlaybackProvider):
    def playback_info(self, playback_id: str) -> PlaybackInfo:
        if not is_valid_playback_id(playback_id):
            raise UpstreamServiceError("Invalid playback ID")
        return PlaybackInfo(
            playback_id=playback_id,
            stream_url=f"https://video.test/{playback_id}.m3u8",
        )
