import os
from dotenv import load_dotenv

load_dotenv()

# Spotify app credentials (set as environment variables or in .env)
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")

# Slack user token with users.profile:write, issued once, never refreshed
SLACK_TOKEN = os.getenv("SLACK_TOKEN", "")

TOKEN_FILE = os.getenv("TOKEN_FILE", "spotify_token.json")
ACTIVITY_LOG = os.getenv("ACTIVITY_LOG", "activity.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# The redirect URI registered in the Spotify dashboard must match exactly
CALLBACK_HOST = "localhost"
CALLBACK_PORT = 3001
CALLBACK_URL = f"http://{CALLBACK_HOST}:{CALLBACK_PORT}/callback"

SCOPES = ["user-read-currently-playing", "user-read-playback-state"]

DEFAULT_POLL_DELAY_MS = 30_000
TRACK_END_BUFFER_MS = 2_000
STATUS_EMOJI = ":musical_note:"
SHUTDOWN_GRACE_SECONDS = 1.0


def validate():
    missing = []
    if not SPOTIFY_CLIENT_ID:
        missing.append("SPOTIFY_CLIENT_ID")
    if not SPOTIFY_CLIENT_SECRET:
        missing.append("SPOTIFY_CLIENT_SECRET")
    if not SLACK_TOKEN:
        missing.append("SLACK_TOKEN")
    if missing:
        raise ValueError(f"Missing required config values: {', '.join(missing)}")
    return True
