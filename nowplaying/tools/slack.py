import logging
from typing import Optional

import requests

from nowplaying.utils import log_action

logger = logging.getLogger(__name__)

PROFILE_SET_URL = "https://slack.com/api/users.profile.set"


class SlackPresence:
    """Writes the user's Slack status with a static, pre-issued user token."""

    def __init__(self, token: str, http: Optional[requests.Session] = None):
        self.token = token
        self._http = http or requests.Session()

    def publish(self, text: str, emoji: str) -> bool:
        payload = {"profile": {"status_text": text, "status_emoji": emoji}}
        headers = {"Authorization": f"Bearer {self.token}"}
        try:
            resp = self._http.post(PROFILE_SET_URL, json=payload, headers=headers)
            body = resp.json()
        except (requests.RequestException, ValueError):
            logger.exception("Slack status update failed")
            return False
        # Slack answers 200 even for API errors; the verdict is in "ok"
        if not body.get("ok"):
            logger.error("Slack status update failed: %s (HTTP %s)", body.get("error"), resp.status_code)
            return False
        log_action("presence", f"{emoji} {text}".strip() or "(cleared)")
        return True

    def clear(self) -> bool:
        return self.publish("", "")
