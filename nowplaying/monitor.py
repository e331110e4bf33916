import asyncio
import logging
from typing import Optional

import requests
from fastapi.concurrency import run_in_threadpool

from nowplaying.config import DEFAULT_POLL_DELAY_MS, STATUS_EMOJI, TRACK_END_BUFFER_MS
from nowplaying.tools.slack import SlackPresence
from nowplaying.tools.spotify import (
    PlaybackState,
    SpotifyAuth,
    SpotifyError,
    SpotifyUnauthorized,
    log_error,
)
from nowplaying.utils import log_action

logger = logging.getLogger(__name__)


class PlaybackMonitor:
    """
    Polls Spotify and mirrors the current track into the Slack status.

    Instead of a fixed interval, each cycle sleeps until the current track is
    expected to end (plus a small buffer), or DEFAULT_POLL_DELAY_MS when
    nothing is playing. At most one poll is in flight at any time.
    """

    def __init__(self, auth: SpotifyAuth, presence: SlackPresence, emoji: str = STATUS_EMOJI,
                 default_delay_ms: int = DEFAULT_POLL_DELAY_MS, buffer_ms: int = TRACK_END_BUFFER_MS):
        self.auth = auth
        self.presence = presence
        self.emoji = emoji
        self.default_delay_ms = default_delay_ms
        self.buffer_ms = buffer_ms
        self._task: Optional[asyncio.Task] = None

    def next_delay_ms(self, playback: Optional[PlaybackState]) -> int:
        if not playback or not playback.is_playing:
            return self.default_delay_ms
        # not clamped: stale progress can make this zero or negative
        return playback.duration_ms - playback.progress_ms + self.buffer_ms

    async def poll_cycle(self) -> Optional[int]:
        """One poll plus presence update. Returns the next delay, or None to stop."""
        while True:
            try:
                playback = await run_in_threadpool(self.auth.currently_playing)
            except SpotifyUnauthorized:
                logger.info("Spotify access token expired, refreshing before polling again")
                await run_in_threadpool(self.auth.refresh)
                continue
            except SpotifyError as e:
                log_error("Playback polling stopped", e)
                log_action("monitor_stopped", e.message)
                return None
            except requests.RequestException as e:
                logger.exception("Playback polling stopped")
                log_action("monitor_stopped", str(e))
                return None
            break

        delay_ms = self.next_delay_ms(playback)
        if not playback or not playback.is_playing:
            await run_in_threadpool(self.presence.clear)
        else:
            text = f"{playback.artist_name} - {playback.track_name}"
            await run_in_threadpool(self.presence.publish, text, self.emoji)
        return delay_ms

    async def run(self):
        while True:
            delay_ms = await self.poll_cycle()
            if delay_ms is None:
                return
            logger.debug("Next poll in %d ms", delay_ms)
            # asyncio.sleep returns immediately for delays <= 0
            await asyncio.sleep(delay_ms / 1000)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        logger.info("Starting playback monitor")
        self._task = asyncio.create_task(self.run())
        self._task.add_done_callback(self.report_crash)
        return self._task

    def stop(self):
        if self._task:
            self._task.cancel()
            self._task = None

    @staticmethod
    def report_crash(task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            task.get_loop().call_exception_handler({
                "message": "Background task crashed",
                "exception": exc,
                "task": task,
            })
