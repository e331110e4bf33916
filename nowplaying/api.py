import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import PlainTextResponse

from nowplaying.session import Session

logger = logging.getLogger(__name__)

SUCCESS_BODY = "success!"


def extract_code(query: str) -> Optional[str]:
    """
    Take whatever follows the first '=' of the raw query string, up to the
    next '='. Only `?code=...` redirects parse correctly; anything placed
    before the code (or an `error=` redirect) comes through mangled.
    """
    parts = query.split("=")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


def create_app(session: Session) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await session.start()
        yield
        await session.shutdown()

    app = FastAPI(
        title="Spotify Slack Status",
        description="Receives the Spotify authorization redirect for the now-playing status sync.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.session = session

    @app.get("/callback", summary="Spotify authorization redirect", response_class=PlainTextResponse)
    async def callback(request: Request, background_tasks: BackgroundTasks):
        code = extract_code(request.url.query)
        if code:
            # exchange runs after the response is sent; its outcome is only logged
            background_tasks.add_task(session.handle_code, code)
        else:
            logger.warning("Callback hit without an authorization code: %r", request.url.query)
        return PlainTextResponse(SUCCESS_BODY)

    return app
