import asyncio
import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from nowplaying import config
from nowplaying.monitor import PlaybackMonitor
from nowplaying.tools.slack import SlackPresence
from nowplaying.tools.spotify import AuthState, SpotifyAuth
from nowplaying.tools.token_store import TokenStore
from nowplaying.utils import log_action

logger = logging.getLogger(__name__)


class Session:
    """Everything the process owns, handed to the web app and signal handlers."""

    def __init__(self, store: TokenStore, auth: SpotifyAuth, presence: SlackPresence,
                 monitor: PlaybackMonitor, grace_seconds: float = config.SHUTDOWN_GRACE_SECONDS):
        self.store = store
        self.auth = auth
        self.presence = presence
        self.monitor = monitor
        self.grace_seconds = grace_seconds
        self._suspending: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls) -> "Session":
        store = TokenStore(config.TOKEN_FILE)
        auth = SpotifyAuth(
            config.SPOTIFY_CLIENT_ID,
            config.SPOTIFY_CLIENT_SECRET,
            config.CALLBACK_URL,
            config.SCOPES,
            store,
        )
        presence = SlackPresence(config.SLACK_TOKEN)
        monitor = PlaybackMonitor(auth, presence)
        return cls(store, auth, presence, monitor)

    async def start(self):
        """Reuse a stored credential (refresh, then poll) or ask the user to authorize."""
        try:
            credential = self.store.load()
        except FileNotFoundError:
            self.store.reset()
            credential = self.store.load()

        if not credential:
            self.auth.begin_authorization()
            return

        self.auth.state = AuthState.HAS_CREDENTIAL
        # a failed refresh is logged; polling still starts and retries on 401
        await run_in_threadpool(self.auth.refresh)
        self.monitor.start()

    async def handle_code(self, code: str) -> bool:
        credential = await run_in_threadpool(self.auth.exchange_code, code)
        if credential is None:
            return False
        self.monitor.start()
        return True

    async def suspend(self):
        logger.info("Suspended: pausing playback monitor")
        log_action("signal", "suspend")
        self.monitor.stop()
        await run_in_threadpool(self.presence.clear)

    def request_suspend(self) -> asyncio.Task:
        """Signal-handler entry: run suspend() as a task the session keeps hold of."""
        self._suspending = asyncio.get_running_loop().create_task(self.suspend())
        self._suspending.add_done_callback(PlaybackMonitor.report_crash)
        return self._suspending

    def resume(self):
        logger.info("Resumed: restarting playback monitor")
        log_action("signal", "resume")
        if self.auth.state is AuthState.HAS_CREDENTIAL:
            self.monitor.start()

    async def shutdown(self, grace_seconds: Optional[float] = None):
        self.monitor.stop()
        await run_in_threadpool(self.presence.clear)
        log_action("shutdown", "presence cleared")
        await asyncio.sleep(self.grace_seconds if grace_seconds is None else grace_seconds)
