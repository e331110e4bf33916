# main.py
import asyncio
import logging
import signal

import uvicorn

from nowplaying import config
from nowplaying.api import create_app
from nowplaying.session import Session
from nowplaying.utils import configure_logging

logger = logging.getLogger(__name__)

# === Signals ===

def install_signal_handlers(loop: asyncio.AbstractEventLoop, session: Session):
    # uvicorn owns SIGINT/SIGTERM and runs the lifespan shutdown for them
    suspend = getattr(signal, "SIGTSTP", None)
    resume = getattr(signal, "SIGCONT", None)
    try:
        if suspend is not None:
            loop.add_signal_handler(suspend, session.request_suspend)
        if resume is not None:
            loop.add_signal_handler(resume, session.resume)
    except NotImplementedError:
        logger.warning("Suspend/resume signals are not supported on this platform")


def install_exception_handler(loop: asyncio.AbstractEventLoop, server: uvicorn.Server):
    def handler(loop, context):
        loop.default_exception_handler(context)
        logger.error("Unhandled error in background task, shutting down")
        server.should_exit = True

    loop.set_exception_handler(handler)


async def serve(server: uvicorn.Server, session: Session):
    loop = asyncio.get_running_loop()
    install_signal_handlers(loop, session)
    install_exception_handler(loop, server)
    await server.serve()


def main():
    configure_logging(config.LOG_LEVEL, config.ACTIVITY_LOG)
    config.validate()

    session = Session.from_config()
    app = create_app(session)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.CALLBACK_HOST,
            port=config.CALLBACK_PORT,
            log_level=config.LOG_LEVEL.lower(),
        )
    )
    try:
        asyncio.run(serve(server, session))
    except KeyboardInterrupt:
        # uvicorn re-raises the captured SIGINT once shutdown has finished
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    main()
