import base64
import enum
import logging
import webbrowser
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote, urlencode

import requests

from nowplaying.tools.token_store import Credential, TokenStore
from nowplaying.utils import log_action

logger = logging.getLogger(__name__)

SPOTIFY_ACCOUNTS = "https://accounts.spotify.com"
AUTHORIZE_URL = SPOTIFY_ACCOUNTS + "/authorize"
TOKEN_URL = SPOTIFY_ACCOUNTS + "/api/token"
CURRENTLY_PLAYING_URL = "https://api.spotify.com/v1/me/player/currently-playing"


class SpotifyError(RuntimeError):
    """A failed Spotify call, with whatever detail the provider sent back."""

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None,
                 code: Any = None, description: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.reason = reason
        self.code = code
        self.description = description

    @classmethod
    def from_response(cls, resp: requests.Response, message: str) -> "SpotifyError":
        code, description = _error_details(resp)
        return cls(message, status=resp.status_code, reason=resp.reason, code=code, description=description)


class SpotifyUnauthorized(SpotifyError):
    pass


def _error_details(resp: requests.Response) -> Tuple[Any, Optional[str]]:
    try:
        body = resp.json()
    except ValueError:
        return None, resp.text or None
    if not isinstance(body, dict):
        return None, None
    error = body.get("error")
    # Web API: {"error": {"status": 401, "message": "..."}}
    if isinstance(error, dict):
        return error.get("status"), error.get("message")
    # Accounts service: {"error": "invalid_grant", "error_description": "..."}
    return error, body.get("error_description")


class AuthState(enum.Enum):
    NO_CREDENTIAL = "no_credential"
    AWAITING_CODE = "awaiting_code"
    HAS_CREDENTIAL = "has_credential"


@dataclass
class PlaybackState:
    is_playing: bool
    track_name: str
    artist_name: str
    duration_ms: int
    progress_ms: int

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PlaybackState":
        item = payload.get("item") or {}
        artists = item.get("artists") or [{}]
        return cls(
            # ads and some podcast episodes report is_playing with no item
            is_playing=bool(payload.get("is_playing")) and bool(item),
            track_name=item.get("name") or "",
            artist_name=artists[0].get("name") or "",
            duration_ms=int(item.get("duration_ms") or 0),
            progress_ms=int(payload.get("progress_ms") or 0),
        )


class SpotifyAuth:
    """
    Authorization code flow against Spotify for a single local user.

    NO_CREDENTIAL -> AWAITING_CODE (browser opened) -> HAS_CREDENTIAL, then
    refresh() keeps it in HAS_CREDENTIAL. The TokenStore is the only place the
    credential is written; this class reads it back before every call.
    """

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str, scopes,
                 store: TokenStore, http: Optional[requests.Session] = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes)
        self.store = store
        self.state = AuthState.NO_CREDENTIAL
        self._http = http or requests.Session()

    # Authorization --------------------------------------------------
    def authorize_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
        }
        return AUTHORIZE_URL + "?" + urlencode(params, quote_via=quote)

    def begin_authorization(self) -> str:
        url = self.authorize_url()
        self.state = AuthState.AWAITING_CODE
        logger.info("Opening Spotify authorization in the browser: %s", url)
        log_action("authorize", url)
        webbrowser.open(url)
        return url

    def _basic_auth_header(self) -> Dict[str, str]:
        raw = f"{self.client_id}:{self.client_secret}".encode("utf8")
        return {"Authorization": "Basic " + base64.b64encode(raw).decode("ascii")}

    def _request_token(self, payload: Dict[str, str]) -> Credential:
        resp = self._http.post(TOKEN_URL, data=payload, headers=self._basic_auth_header())
        if not resp.ok:
            raise SpotifyError.from_response(resp, f"Token request ({payload['grant_type']}) failed")
        data = resp.json()
        if "access_token" not in data:
            raise SpotifyError("Token response carried no access_token", status=resp.status_code)
        return data

    def exchange_code(self, code: str) -> Optional[Credential]:
        """Trade the redirect's one-time code for a token pair and persist it."""
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        }
        try:
            credential = self._request_token(payload)
        except SpotifyError as e:
            log_error("Authorization code exchange failed", e)
            return None
        except requests.RequestException:
            logger.exception("Authorization code exchange failed")
            return None
        self.store.save(credential)
        self.state = AuthState.HAS_CREDENTIAL
        log_action("code_exchanged", f"expires_in={credential.get('expires_in')}")
        return credential

    def refresh(self) -> Optional[Credential]:
        """Renew the access token; the stored refresh token survives if Spotify omits it."""
        try:
            stored = self.store.load() or {}
        except FileNotFoundError:
            stored = {}
        refresh_token = stored.get("refresh_token")
        if not refresh_token:
            logger.error("Token refresh skipped: no refresh token stored")
            return None
        payload = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        try:
            fields = self._request_token(payload)
        except SpotifyError as e:
            log_error("Token refresh failed", e)
            return None
        except requests.RequestException:
            logger.exception("Token refresh failed")
            return None
        credential = self.store.update(fields)
        self.state = AuthState.HAS_CREDENTIAL
        log_action("token_refreshed", f"expires_in={credential.get('expires_in')}")
        return credential

    # Playback -------------------------------------------------------
    def access_token(self) -> str:
        try:
            credential = self.store.load()
        except FileNotFoundError:
            credential = None
        if not credential or not credential.get("access_token"):
            raise SpotifyError("No Spotify access token stored")
        return credential["access_token"]

    def currently_playing(self) -> Optional[PlaybackState]:
        """
        Returns None when nothing is playing (Spotify answers 204 No Content).
        Raises SpotifyUnauthorized on 401 and SpotifyError on anything else.
        """
        headers = {"Authorization": f"Bearer {self.access_token()}"}
        resp = self._http.get(CURRENTLY_PLAYING_URL, headers=headers)
        if resp.status_code == 401:
            raise SpotifyUnauthorized.from_response(resp, "Spotify rejected the access token")
        if not resp.ok:
            raise SpotifyError.from_response(resp, "Currently playing request failed")
        if resp.status_code == 204 or not resp.text.strip():
            return None
        return PlaybackState.from_payload(resp.json())


def log_error(what: str, error: SpotifyError):
    logger.error(
        "%s: %s (status=%s %s, code=%s, description=%s)",
        what, error.message, error.status, error.reason, error.code, error.description,
    )
