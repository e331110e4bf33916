import asyncio
import signal
from types import SimpleNamespace

import pytest

from nowplaying.main import install_exception_handler, install_signal_handlers
from nowplaying.monitor import PlaybackMonitor


class RecordingLoop:
    def __init__(self, supported=True):
        self.supported = supported
        self.handlers = {}

    def add_signal_handler(self, sig, callback):
        if not self.supported:
            raise NotImplementedError
        self.handlers[sig] = callback


class StubSession:
    def request_suspend(self):
        pass

    def resume(self):
        pass


@pytest.mark.skipif(not hasattr(signal, "SIGTSTP"), reason="no job-control signals")
def test_suspend_and_resume_signals_are_wired_to_the_session():
    loop = RecordingLoop()
    session = StubSession()

    install_signal_handlers(loop, session)

    assert loop.handlers == {
        signal.SIGTSTP: session.request_suspend,
        signal.SIGCONT: session.resume,
    }


def test_unsupported_signal_handlers_only_warn(caplog):
    install_signal_handlers(RecordingLoop(supported=False), StubSession())
    assert "not supported" in caplog.text


def test_monitor_crash_asks_the_server_to_exit(caplog):
    server = SimpleNamespace(should_exit=False)
    monitor = PlaybackMonitor(auth=None, presence=None)

    async def broken_cycle():
        raise ValueError("unexpected payload")

    monitor.poll_cycle = broken_cycle

    async def scenario():
        install_exception_handler(asyncio.get_running_loop(), server)
        task = monitor.start()
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

    asyncio.run(scenario())

    assert server.should_exit is True
    assert "shutting down" in caplog.text
    assert "unexpected payload" in caplog.text
